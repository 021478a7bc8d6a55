# sessionswitch.daemon - daemon main loop and lifecycle
# A single loop: wait for the trigger file to change (or for the
# health-check interval to pass), process the request under the lock,
# then check that the recorded state still matches reality.

import contextlib
import os
import signal
import sys
import time

import sessionswitch
import sessionswitch.config
import sessionswitch.logging
from sessionswitch import display, lock, processes, state, switch, trigger

log = sessionswitch.logging.log.getChild('daemon')

class Daemon:
	def __init__(self, settings, handler=None, watcher=None):
		self.settings = settings

		if handler is None:
			# Only the real daemon needs the system bus.
			from sessionswitch import systemd

			memory = display.WakeMemory(settings.wake_memory_file)
			memory.load()
			handler = switch.Handler(
				settings,
				services=systemd.ServiceManager(settings),
				processes=processes.ProcessReconciler(settings),
				display=display.Display(settings, memory),
				store=state.StateStore(settings.state_file),
			)
		self.handler = handler
		self.watcher = watcher if watcher is not None else trigger.TriggerWatcher(settings.trigger_file)
		self.lock = lock.Lock(settings.lock_file)

		self.stopping = False

	def prepare(self):
		trigger.prepare(self.settings.trigger_file)
		self.handler.seed_state()

	# -------------------------------------------------------------------------
	# One loop iteration

	def wake(self):
		'''Consume and handle the pending request, if any, then check
		that the recorded state still matches reality.
		Returns the switch outcome, or None if nothing was switched.'''
		with self.lock.try_acquire() as acquired:
			if not acquired:
				# Whoever holds the lock owns the state, and will see
				# the trigger content (or the client can ask again).
				log.info('Another switch operation in progress, skipping.')
				return None

			request = trigger.consume(self.settings.trigger_file)
			result = self.handler.dispatch(request)
			self.handler.reconcile()
			return result

	# -------------------------------------------------------------------------
	# Lifecycle

	def signal_stop(self, signalnum, _frame):
		log.info('Got signal %r - stopping after the current operation.', signal.strsignal(signalnum))
		self.stopping = True

	def run(self):
		s = self.settings
		self.prepare()
		self.watcher.start()

		previous_handlers = {
			signalnum: signal.signal(signalnum, self.signal_stop)
			for signalnum in (signal.SIGINT, signal.SIGTERM)
		}
		signal.set_wakeup_fd(self.watcher.wakeup_w)

		write_pid_file(s.pid_file)
		log.info('Session switch handler started (%s, reduce delays: %s, wake method: %s).',
				 self.handler, s.reduce_delays, s.wake_method)
		try:
			# Handle whatever was requested while we were not running.
			self.wake()

			log.debug('Entering main loop, watching %r.', s.trigger_file)
			next_check = time.monotonic() + s.health_interval
			while not self.stopping:
				timeout = None
				if s.health_interval:
					timeout = max(0, next_check - time.monotonic())
				changed = self.watcher.wait(timeout)
				if self.stopping:
					break

				# Other files in the same directory change too; those
				# only count once the health check is due.
				due = bool(s.health_interval) and time.monotonic() >= next_check
				if changed or due:
					self.wake()
					next_check = time.monotonic() + s.health_interval
		finally:
			signal.set_wakeup_fd(-1)
			for signalnum, handler in previous_handlers.items():
				signal.signal(signalnum, handler)
			self.watcher.stop()
			with contextlib.suppress(FileNotFoundError):
				os.remove(s.pid_file)
			log.info('Session switch handler stopped.')


def write_pid_file(path):
	with open(path, 'w', encoding='ascii') as f:
		f.write(str(os.getpid()))

def read_pid(path):
	'''Returns the PID of the running daemon, or None.'''
	try:
		with open(path, 'rb') as f:
			pid = int(f.read())
	except (OSError, ValueError):
		return None
	try:
		os.kill(pid, 0)
	except ProcessLookupError:
		return None
	except PermissionError:
		pass  # Exists, but belongs to someone else (root).
	return pid


# Entry point of session-switch-handler.
def main():
	try:
		settings = sessionswitch.config.load()
		Daemon(settings).run()
	except sessionswitch.UserError as e:
		log.critical('Fatal error: %s', e)
		return 1
	return 0

if __name__ == '__main__':
	sys.exit(main())
