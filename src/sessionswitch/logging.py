# sessionswitch.logging - logging implementation

import logging
import os

# Extra severity level, for very chatty diagnostics (polling loops etc.)
TRACE = logging.DEBUG - 5

logging.addLevelName(TRACE, 'TRACE')

# Define a class which implements the severity levels as methods
class Logger(logging.getLoggerClass()):
	def trace(self, *args, **kwargs):
		self.log(TRACE, *args, **kwargs)

logging.setLoggerClass(Logger)

# Verbosity is an offset from INFO: 1 is DEBUG, 2 is TRACE, negative
# values make the output quieter.
_levels = [
	logging.CRITICAL,
	logging.ERROR,
	logging.WARNING,
	logging.INFO,
	logging.DEBUG,
	TRACE,
]

def _level():
	try:
		verbose = int(os.getenv('SESSION_SWITCH_VERBOSE', '0'))
	except ValueError:
		verbose = 0
	index = max(0, min(len(_levels) - 1, 3 + verbose))
	return _levels[index]

logging.basicConfig(
	format=os.getenv('SESSION_SWITCH_LOG_FORMAT', '%(name)s: %(message)s'),
	level=_level(),
)
log = logging.getLogger('session-switch')
