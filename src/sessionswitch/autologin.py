# sessionswitch.autologin - SDDM autologin session selection
# Keeps the SDDM drop-in pointed at the session we are switching to,
# so that a reboot lands in the same mode.

import configparser
import contextlib
import os

SECTION = 'Autologin'
ENCODING_ERRORS = 'surrogateescape'

def read_session(path):
	parser = _read(path)
	if parser.has_option(SECTION, 'Session'):
		return parser.get(SECTION, 'Session')
	return None

def write_session(path, session):
	'''Set the autologin session, keeping other keys (e.g. User=).'''
	parser = _read(path)
	if not parser.has_section(SECTION):
		parser.add_section(SECTION)
	parser.set(SECTION, 'Session', session)

	directory = os.path.dirname(path)
	if directory:
		os.makedirs(directory, exist_ok=True)

	tmp = path + '.tmp'
	try:
		with open(tmp, 'w', encoding='utf-8', errors=ENCODING_ERRORS) as f:
			parser.write(f, space_around_delimiters=False)
		os.chmod(tmp, 0o644)
		os.replace(tmp, path)
	except OSError:
		with contextlib.suppress(FileNotFoundError):
			os.remove(tmp)
		raise

def _read(path):
	parser = configparser.ConfigParser(interpolation=None)
	# SDDM keys are case-sensitive.
	parser.optionxform = str
	# Bytes which are not UTF-8 (say, in User=) are carried through
	# unchanged rather than rejected.
	try:
		with open(path, 'r', encoding='utf-8', errors=ENCODING_ERRORS) as f:
			parser.read_file(f, source=path)
	except FileNotFoundError:
		pass
	return parser
