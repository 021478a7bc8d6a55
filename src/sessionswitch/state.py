# sessionswitch.state - persisted session state
# The daemon owns the live state in memory.  The state file is its
# serialization, read back after a restart and by external observers
# (e.g. "session-switch status").

import contextlib
import os

from sessionswitch.logging import log

KODI = 'kodi'
GAMEMODE = 'gamemode'
UNKNOWN = 'unknown'
FAILED = 'failed'

VALUES = (KODI, GAMEMODE, UNKNOWN, FAILED)

class StateStore:
	def __init__(self, path):
		self.path = path
		self.log = log.getChild('state')

	# Returns the persisted state, or None if nothing was persisted yet.
	def load(self):
		try:
			with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
				value = f.read().strip()
		except FileNotFoundError:
			return None
		except OSError as e:
			self.log.warning('Could not read %r: %s', self.path, e)
			return UNKNOWN

		if value not in VALUES:
			self.log.warning('Ignoring unrecognized state %r in %r.', value, self.path)
			return UNKNOWN
		return value

	def save(self, value):
		assert value in VALUES, 'Invalid session state: %r' % (value,)

		directory = os.path.dirname(self.path)
		if directory:
			os.makedirs(directory, exist_ok=True)

		tmp = self.path + '.tmp'
		try:
			with open(tmp, 'w', encoding='utf-8') as f:
				f.write(value + '\n')
			os.chmod(tmp, 0o644)
			os.replace(tmp, self.path)
		except OSError:
			with contextlib.suppress(FileNotFoundError):
				os.remove(tmp)
			raise
		self.log.debug('Persisted state %r.', value)
