# sessionswitch.util - utility definitions

import time

from sessionswitch.logging import log

# -----------------------------------------------------------------------------
# Bounded retry

# Call predicate up to `attempts` times, sleeping `interval` seconds
# between calls.  The interval is multiplied by `backoff` after each
# failed attempt.  Returns the first truthy result, or the last falsy
# one.  Does not sleep after the final attempt.
def retry(attempts, interval, predicate, backoff=1.0):
	result = None
	for attempt in range(1, attempts + 1):
		result = predicate()
		if result:
			return result
		if attempt < attempts:
			log.trace('Attempt %d/%d of %r failed, retrying in %.2fs.',
					  attempt, attempts, predicate, interval)
			if interval > 0:
				time.sleep(interval)
			interval *= backoff
	return result

# Sleep, unless the delay is zero (as configured in tests and fast modes).
def pause(seconds):
	if seconds > 0:
		time.sleep(seconds)
