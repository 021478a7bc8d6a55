# sessionswitch.lock - advisory lock around one switch operation

import contextlib
import fcntl
import os

class Lock:
	def __init__(self, path):
		self.path = path

	@contextlib.contextmanager
	def try_acquire(self):
		'''Take the lock without blocking.
		Yields True if it was acquired, or False if another holder has it.'''
		fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
		try:
			try:
				fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
			except BlockingIOError:
				yield False
				return

			try:
				yield True
			finally:
				fcntl.flock(fd, fcntl.LOCK_UN)
		finally:
			os.close(fd)
