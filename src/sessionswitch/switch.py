# sessionswitch.switch - session transitions
# Moves the machine between the gaming session (SDDM, which autostarts
# gamescope + Steam) and the standalone Kodi GBM session.  Only one
# transition runs at a time; the daemon makes sure of that.

import configparser

from sessionswitch import autologin, state
from sessionswitch.logging import log
from sessionswitch.util import pause, retry

class Handler:
	def __init__(self, settings, services, processes, display, store):
		self.log = log.getChild('switch')
		self.settings = settings

		# Collaborators.
		self.services = services
		self.processes = processes
		self.display = display
		self.store = store

		# What we believe is running right now.  This is the live
		# state; the store only mirrors it.
		self.state = state.UNKNOWN

	def __str__(self):
		return 'session state: %s' % (self.state,)

	# -----------------------------------------------------------------------------
	# State

	def set_state(self, value):
		self.state = value
		try:
			self.store.save(value)
		except OSError as e:
			self.log.error('Could not persist session state %r: %s', value, e)

	def seed_state(self):
		'''Initialize the state on start-up: from the store if it has
		anything, otherwise from what the service manager reports.'''
		saved = self.store.load()
		if saved is not None:
			self.state = saved
			self.log.info('Restored session state: %s', saved)
			return

		if self.services.is_active(self.settings.kodi_service):
			inferred = state.KODI
		elif self.services.is_active(self.settings.gaming_service):
			inferred = state.GAMEMODE
		else:
			inferred = state.UNKNOWN
		self.log.info('No saved session state; inferred: %s', inferred)
		self.set_state(inferred)

	def reconcile(self):
		'''Forget a state which is no longer true, so that a later
		request for that session is not skipped as a no-op.'''
		s = self.settings
		match self.state:
			case state.KODI:
				service = s.kodi_service
			case state.GAMEMODE:
				service = s.gaming_service
			case _:
				return

		if not self.services.is_active(service):
			self.log.info('State mismatch: state is %s, but %s is not active.', self.state, service)
			self.set_state(state.UNKNOWN)

	# -----------------------------------------------------------------------------
	# Requests

	def dispatch(self, request):
		'''Handle one request token.  Returns the outcome of the switch,
		or None if no switch was attempted.'''
		match request:
			case '':
				return None
			case 'kodi':
				return self.switch_to_kodi()
			case 'gamemode' | 'gaming':
				return self.switch_to_gamemode()
			case _:
				self.log.error('Unknown request: %r', request)
				return None

	# -----------------------------------------------------------------------------
	# Transitions

	def switch_to_kodi(self) -> bool:
		s = self.settings
		self.log.info('Switching to Kodi mode...')

		if self.state == state.KODI and \
		   not self.services.is_active(s.gaming_service) and \
		   self.services.is_active(s.kodi_service):
			self.log.info('Already in Kodi mode.')
			return True

		self._write_autologin(s.kodi_autologin_session)

		if self.services.is_active(s.gaming_service):
			self.log.info('Stopping %s...', s.gaming_service)
			if not self.services.stop(s.gaming_service):
				# Starting Kodi on top of a half-stopped gaming
				# session would fight it for the display.
				return self._fail('Failed to stop %s.' % (s.gaming_service,))
			pause(s.delay_gaming_stop)

		self.processes.terminate(s.gaming_processes)

		if not self._prepare_display():
			return self._fail('GPU device did not become ready.')

		self.log.info('Starting %s...', s.kodi_service)
		started = self._start(
			s.kodi_service,
			verify=self._kodi_running,
			cleanup=lambda: self.processes.terminate(s.kodi_processes, force=True),
		)
		if not started:
			return self._fail('Could not start %s.' % (s.kodi_service,))

		self.set_state(state.KODI)

		# Some displays need a second nudge once Kodi has taken over.
		pause(s.delay_kodi_start)
		self.display.wake()

		self.log.info('Successfully switched to Kodi.')
		return True

	def switch_to_gamemode(self) -> bool:
		s = self.settings
		self.log.info('Switching to gaming mode...')

		if self.state == state.GAMEMODE and \
		   self.services.is_active(s.gaming_service) and \
		   not self.services.is_active(s.kodi_service):
			self.log.info('Already in gaming mode.')
			return True

		self._write_autologin(s.gaming_autologin_session)

		if self.services.is_active(s.kodi_service):
			self.log.info('Stopping %s...', s.kodi_service)
			if not self.services.stop(s.kodi_service):
				# The process clean-up below takes care of the rest.
				self.log.warning('Failed to stop %s; continuing teardown.', s.kodi_service)
			pause(s.delay_kodi_stop)

		self.processes.terminate(s.kodi_processes)

		if not self._prepare_display():
			return self._fail('GPU device did not become ready.')

		self.services.reset_failed(s.gaming_service)

		self.log.info('Starting %s...', s.gaming_service)
		# SDDM forks the actual session outside of our control, so the
		# unit being active is all we can check.
		started = self._start(
			s.gaming_service,
			verify=lambda: self.services.is_active(s.gaming_service),
			cleanup=lambda: self.processes.terminate(s.gaming_processes, force=True),
		)
		if not started:
			return self._fail('Could not start %s.' % (s.gaming_service,))

		self.set_state(state.GAMEMODE)
		self.log.info('Successfully switched to gaming mode.')
		return True

	# -----------------------------------------------------------------------------
	# Helpers

	def _write_autologin(self, session):
		try:
			autologin.write_session(self.settings.autologin_file, session)
		except (OSError, ValueError, configparser.Error) as e:
			self.log.warning('Could not update autologin session in %r: %s',
							 self.settings.autologin_file, e)

	def _prepare_display(self) -> bool:
		if not self.display.wait_for_device():
			return False
		self.display.ensure_vt()
		self.display.wake()
		return True

	def _kodi_running(self) -> bool:
		s = self.settings
		return self.processes.wait_for(s.kodi_main_processes, s.process_appear_timeout)

	def _start(self, service, verify, cleanup) -> bool:
		'''Start `service` and check that it came up, retrying within the
		attempt limit.  If that is exhausted, clear the unit's failed
		state and any leftovers from the attempts, and try once more.'''
		s = self.settings

		def attempt():
			if not self.services.start(service):
				self.log.warning('%s failed to start.', service)
				return False
			if not verify():
				self.log.warning('%s reported started, but the session did not come up.', service)
				return False
			return True

		if retry(s.start_attempts, s.start_backoff, attempt):
			return True

		self.log.warning('%s did not start after %d attempt(s); trying recovery.',
						 service, s.start_attempts)
		self.services.reset_failed(service)
		cleanup()
		return attempt()

	def _fail(self, message) -> bool:
		# No automatic fallback to the other session: the failed state
		# is left for an operator (or a health-check tool) to see.
		self.log.error('%s Session switch failed.', message)
		self.set_state(state.FAILED)
		return False
