# sessionswitch.trigger - the trigger file mailbox
# Clients write a bare token (kodi, gamemode, gaming) into the trigger
# file; the daemon watches it with inotify, then reads and clears it.

import contextlib
import os
import select

import inotify_simple

import sessionswitch.logging

log = sessionswitch.logging.log.getChild('trigger')

# -----------------------------------------------------------------------------
# Mailbox file

def prepare(path):
	'''Make sure the mailbox exists and is writable by every user.
	Pending content is left alone, so that a request written while the
	daemon was restarting still gets processed.'''
	directory = os.path.dirname(path)
	if directory:
		os.makedirs(directory, exist_ok=True)
	fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o666)
	os.close(fd)
	# The umask may have masked the mode above.
	os.chmod(path, 0o666)

def parse(raw):
	'''Normalize a request: case-, whitespace- and newline-insensitive.'''
	return ''.join(raw.split()).lower()

def consume(path):
	'''Read the current request and clear the mailbox.
	Returns the normalized token, or '' if there was no request.'''
	# Read-only, so that looking at an empty mailbox is not itself a
	# change event.
	try:
		with open(path, 'r', encoding='utf-8', errors='replace') as f:
			raw = f.read()
	except FileNotFoundError:
		log.warning('Trigger file %r disappeared; recreating it.', path)
		prepare(path)
		return ''

	# Only clear content which is actually there: clearing an empty
	# file would produce another change event, and wake us up again
	# forever.  A request written between the read above and the
	# truncation below is lost; the client has to send it again.
	if raw:
		os.truncate(path, 0)

	request = parse(raw)
	if request:
		log.debug('Consumed request %r.', request)
	return request

def write(path, token):
	'''Client side: drop a request into the mailbox.'''
	with open(path, 'w', encoding='utf-8') as f:
		f.write(token + '\n')

# -----------------------------------------------------------------------------
# Change notification

class TriggerWatcher:
	'''Waits for the trigger file to change.

	The parent directory is watched rather than the file itself, so
	that the watch survives the file being replaced or recreated.
	Signals interrupt the wait via a self-pipe, so that a stop request
	is seen promptly even while idle.'''

	# No CLOSE_WRITE: it also fires when a file opened for writing (such
	# as the lock file next door) is closed unchanged.
	flags = (
		inotify_simple.flags.MODIFY |
		inotify_simple.flags.CREATE |
		inotify_simple.flags.MOVED_TO
	)

	def __init__(self, path):
		self.path = path
		self.name = os.path.basename(path)
		self.inotify = None
		self.watch = None

		# Self-pipe, written to by the signal machinery.
		self.wakeup_r = None
		self.wakeup_w = None

	def start(self):
		self.inotify = inotify_simple.INotify()
		self.watch = self.inotify.add_watch(os.path.dirname(self.path) or '.', self.flags)

		(self.wakeup_r, self.wakeup_w) = os.pipe()
		os.set_blocking(self.wakeup_r, False)
		os.set_blocking(self.wakeup_w, False)
		log.debug('Watching %r.', self.path)

	def stop(self):
		if self.inotify is not None:
			with contextlib.suppress(OSError):
				# Fails if the directory went away, taking the watch with it.
				self.inotify.rm_watch(self.watch)
			self.inotify.close()
			self.inotify = None
			self.watch = None
		for fd in (self.wakeup_r, self.wakeup_w):
			if fd is not None:
				os.close(fd)
		self.wakeup_r = self.wakeup_w = None

	def wait(self, timeout=None):
		'''Block until the trigger file changes, a signal arrives, or
		`timeout` seconds pass.  Returns True if the file changed.'''
		poller = select.poll()
		poller.register(self.inotify.fileno(), select.POLLIN)
		poller.register(self.wakeup_r, select.POLLIN)

		poller.poll(None if timeout is None else timeout * 1000)

		# Drain the wake-up pipe.
		with contextlib.suppress(BlockingIOError):
			while os.read(self.wakeup_r, 512):
				pass

		changed = False
		for event in self.inotify.read(timeout=0):
			if event.mask & inotify_simple.flags.Q_OVERFLOW:
				# Events were lost; assume ours was among them.
				changed = True
			elif event.name == self.name:
				changed = True
		log.trace('Woke up (trigger changed: %s).', changed)
		return changed
