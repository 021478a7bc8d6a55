# sessionswitch.processes - process reconciler
# Gets rid of whatever is left of a session after its service was
# stopped, and checks that a freshly started session is really running.

import os

import psutil

from sessionswitch.logging import log
from sessionswitch.util import retry

class ProcessReconciler:
	def __init__(self, settings):
		self.log = log.getChild('processes')
		self.settings = settings

	# A process matches on its exact name or executable name; never on
	# a substring of its command line, so that e.g. an editor with
	# "steam" in a file name is left alone.
	@staticmethod
	def matches(info, names):
		if info.get('name') in names:
			return True
		exe = info.get('exe')
		return bool(exe) and os.path.basename(exe) in names

	def find(self, names):
		names = frozenset(names)
		own_pid = os.getpid()
		found = []
		for proc in psutil.process_iter(['pid', 'name', 'exe']):
			if proc.info['pid'] == own_pid:
				continue
			if self.matches(proc.info, names):
				found.append(proc)
		return found

	def _signal(self, procs, kill):
		for proc in procs:
			try:
				if kill:
					proc.kill()
				else:
					proc.terminate()
			except psutil.NoSuchProcess:
				pass
			except psutil.AccessDenied:
				self.log.warning('Not allowed to signal %s (PID %d).', proc.info['name'], proc.pid)

	def terminate(self, names, force=False) -> bool:
		'''Terminate all processes with the given names.
		SIGTERM first; whatever survives the grace period gets SIGKILL.
		With force, SIGKILL right away.
		Returns True if no matching process is left.'''
		if self.settings.skip_process_cleanup and not force:
			return True

		procs = self.find(names)
		if not procs:
			self.log.debug('No %s processes to clean up.', '/'.join(names))
			return True

		grace = self.settings.delay_process_kill
		self.log.info('%s %d process(es): %s',
					  'Killing' if force else 'Terminating',
					  len(procs), ', '.join('%s[%d]' % (p.info['name'], p.pid) for p in procs))

		if not force:
			self._signal(procs, kill=False)
			_gone, procs = psutil.wait_procs(procs, timeout=grace)
			if procs:
				self.log.info('%d process(es) ignored SIGTERM, killing.', len(procs))

		if procs:
			self._signal(procs, kill=True)
			_gone, procs = psutil.wait_procs(procs, timeout=max(grace, 0.1))

		if procs:
			self.log.warning('Processes survived SIGKILL: %s',
							 ', '.join(str(p.pid) for p in procs))
			return False
		return True

	def wait_for(self, names, timeout) -> bool:
		'''Wait up to `timeout` seconds for a matching process to appear.'''
		interval = 0.25
		attempts = max(1, int(timeout / interval))
		if retry(attempts, interval, lambda: self.find(names)):
			return True
		self.log.warning('None of %s appeared within %ss.', ', '.join(names), timeout)
		return False
