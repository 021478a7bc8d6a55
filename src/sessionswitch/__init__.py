# sessionswitch.__init__ - core definitions and command-line interface
# Switches a machine between a Steam gaming session (SDDM + gamescope)
# and a standalone Kodi GBM/HDR session, on request of unprivileged
# clients.

import configparser
import sys

# -----------------------------------------------------------------------------
# Exceptions

# Represents an expected failure mode, which is unlikely to be due to
# a bug in the handler.  In this case, we do not need to print an
# exception stack trace; just print the error message and quit.
class UserError(Exception):
	pass

# -----------------------------------------------------------------------------
# Import modules
# Placed after the declarations above, so that they can be used by the
# imported modules.

import sessionswitch.autologin
import sessionswitch.config
import sessionswitch.daemon
import sessionswitch.request
import sessionswitch.state
from sessionswitch.logging import log

# -----------------------------------------------------------------------------
# Commands

def print_status(settings, f):
	current = sessionswitch.state.StateStore(settings.state_file).load()
	f.write('Session state: %s\n' % (current or 'not recorded',))

	pid = sessionswitch.daemon.read_pid(settings.pid_file)
	if pid is None:
		f.write('Handler: not running\n')
	else:
		f.write('Handler: running (PID %d)\n' % (pid,))

	try:
		boot_session = sessionswitch.autologin.read_session(settings.autologin_file)
	except (OSError, ValueError, configparser.Error) as e:
		boot_session = 'unknown (%s)' % (e,)
	f.write('Boot session: %s\n' % (boot_session or 'not configured',))

	# Importing dbus is only needed here, and fails without a system bus
	# library; the rest of the status is still useful then.
	try:
		from sessionswitch.systemd import ServiceManager
		services = ServiceManager(settings)
		for unit in (settings.kodi_service, settings.gaming_service):
			try:
				unit_state = services.active_state(unit)
			except Exception as e:
				unit_state = 'unknown (%s)' % (e,)
			f.write('%s: %s\n' % (unit, unit_state))
	except ImportError as e:
		f.write('Service states unavailable: %s\n' % (e,))

def print_config(settings, f):
	f.write('Configuration files searched:\n')
	f.write(''.join('- %s\n' % (path,) for path in sessionswitch.config.get_config_files()))
	f.write('Effective settings:\n')
	f.write(''.join('  %s = %r\n' % item for item in settings.items()))

# -----------------------------------------------------------------------------
# Entry point

def main():
	args = sys.argv[1:]

	help_text = '''
Usage: session-switch COMMAND

Commands:
  help              Print this message.
  start             Run the session switch handler (in the foreground).
  status            Print the current session state.
  request SESSION   Request a switch to SESSION (kodi or gamemode).
  config            Print the effective configuration.
'''

	if not args:
		sys.stderr.write(help_text)
		return 2

	try:
		match args[0]:
			case 'help':
				sys.stdout.write(help_text)

			case 'start':
				settings = sessionswitch.config.load()
				sessionswitch.daemon.Daemon(settings).run()

			case 'status':
				settings = sessionswitch.config.load()
				print_status(settings, sys.stdout)

			case 'request':
				if len(args) != 2:
					raise UserError('Usage: session-switch request kodi|gamemode')
				match args[1]:
					case 'kodi':
						return sessionswitch.request.request_kodi()
					case 'gamemode' | 'gaming':
						return sessionswitch.request.request_gamemode()
					case _:
						raise UserError('Unknown session: %r' % (args[1],))

			case 'config':
				settings = sessionswitch.config.load()
				print_config(settings, sys.stdout)

			case _:
				log.critical('Unknown command: %r', args[0])
				return 1

		return 0

	except UserError as e:
		log.critical('Fatal error: %s', e)
		return 1
