# sessionswitch.request - request-kodi / request-gamemode commands
# Fire-and-forget: the request is dropped into the trigger file, and
# the command exits without waiting for the switch to happen.

import sys

import sessionswitch
import sessionswitch.config
from sessionswitch import trigger
from sessionswitch.logging import log

DESCRIPTIONS = {
	'kodi': 'Kodi mode',
	'gamemode': 'Gaming mode',
}

def send(token, quiet=False):
	try:
		settings = sessionswitch.config.load()
		trigger.write(settings.trigger_file, token)
	except (OSError, sessionswitch.UserError) as e:
		# Nobody is waiting for an answer; just say what went wrong.
		log.error('Could not request %s: %s', DESCRIPTIONS[token], e)
		return 0

	if not quiet:
		print('Requested switch to %s' % (DESCRIPTIONS[token],))
	return 0

def request_kodi():
	return send('kodi')

def request_gamemode():
	return send('gamemode')

# Variant for Kodi's UI (power menu, button mapping): only talks when
# run from a terminal.
def kodi_request_gamemode():
	interactive = sys.stdout.isatty()
	ret = send('gamemode', quiet=not interactive)
	if interactive:
		print('Please wait...')
	return ret
