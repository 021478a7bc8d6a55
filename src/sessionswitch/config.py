# sessionswitch.config - loads and holds the handler's settings
# Settings come from the environment (the systemd unit's
# EnvironmentFile), and may then be adjusted by an optional Python
# configuration file.

import importlib.util
import os
import sys

import sessionswitch
from sessionswitch.logging import log

class Settings:
	# Files shared with clients and external observers.
	trigger_file = '/run/session-switch-request'
	state_file = '/var/lib/session-state'
	lock_file = '/run/session-switch.lock'
	pid_file = '/run/session-switch-handler.pid'
	wake_memory_file = '/var/lib/session-switch/wake-method'

	# SDDM drop-in which decides the session a reboot lands in.
	autologin_file = '/etc/sddm.conf.d/zz-steamos-autologin.conf'
	kodi_autologin_session = 'kodi-gbm-session.desktop'
	gaming_autologin_session = 'gamescope-session.desktop'

	# The two mutually exclusive services.
	kodi_service = 'kodi-gbm.service'
	gaming_service = 'sddm.service'

	# Process classes, matched on exact process name or executable name.
	kodi_processes = ('kodi', 'kodi.bin', 'kodi-gbm', 'kodi-standalone')
	# Processes whose presence proves that Kodi actually came up.
	kodi_main_processes = ('kodi-gbm', 'kodi.bin', 'kodi')
	gaming_processes = ('gamescope', 'gamescope-wl', 'steam', 'steamwebhelper')

	# GPU device readiness.
	drm_device = '/dev/dri/card0'
	drm_wait_attempts = 10
	drm_wait_interval = 0.1

	# Virtual terminals.
	target_vt = 1
	bounce_vt = 2
	vt_active_file = '/sys/class/tty/tty0/active'

	# Feature switches.
	skip_display_wake = False
	skip_vt_switch = False
	skip_process_cleanup = False
	skip_drm_wait = False
	wake_method = 'auto'  # auto, ddcutil, vt or none
	reduce_delays = False

	# Seconds between idle wake-ups for health reconciliation.
	# 0 disables timeout wake-ups.
	health_interval = 60

	# Delays, in seconds.
	delay_gaming_stop = 3
	delay_kodi_start = 2
	delay_kodi_stop = 2
	delay_drm_settle = 1
	delay_vt_switch = 0.5
	delay_process_kill = 0.5
	start_backoff = 2

	# Limits.
	start_attempts = 2
	process_appear_timeout = 10
	service_timeout = 10
	service_poll_interval = 0.25

	def apply_reduced_delays(self):
		self.delay_gaming_stop = 0.5
		self.delay_kodi_start = 0.5
		self.delay_kodi_stop = 0.5
		self.delay_drm_settle = 0.2
		self.delay_vt_switch = 0.1
		self.delay_process_kill = 0.2
		self.start_backoff = 0.5

	def items(self):
		'''All settings as (name, value) pairs, sorted by name.'''
		names = [
			name for name in dir(self)
			if not name.startswith('_') and not callable(getattr(self, name))
		]
		return [(name, getattr(self, name)) for name in sorted(names)]

	def __str__(self):
		return ''.join('%s = %r\n' % item for item in self.items())


WAKE_METHODS = ('auto', 'ddcutil', 'vt', 'none')

# Environment variable -> (setting, parser)
def _flag(name, value):
	try:
		return int(value) != 0
	except ValueError:
		raise sessionswitch.UserError('%s must be 0 or 1, not %r' % (name, value))

def _number(name, value):
	try:
		number = float(value)
	except ValueError:
		raise sessionswitch.UserError('%s must be a number, not %r' % (name, value))
	if number < 0:
		raise sessionswitch.UserError('%s must not be negative' % (name,))
	return number

def _wake_method(name, value):
	value = value.strip().lower()
	if value not in WAKE_METHODS:
		raise sessionswitch.UserError('%s must be one of %s, not %r' % (
			name, ', '.join(WAKE_METHODS), value))
	return value

def _string(_name, value):
	return value

environment_variables = {
	'SKIP_DISPLAY_WAKE': ('skip_display_wake', _flag),
	'SKIP_VT_SWITCH': ('skip_vt_switch', _flag),
	'SKIP_PROCESS_CLEANUP': ('skip_process_cleanup', _flag),
	'SKIP_DRM_WAIT': ('skip_drm_wait', _flag),
	'REDUCE_DELAYS': ('reduce_delays', _flag),
	'WAKE_METHOD': ('wake_method', _wake_method),
	'HEALTH_CHECK_INTERVAL': ('health_interval', _number),
	'SESSION_SWITCH_TRIGGER': ('trigger_file', _string),
	'SESSION_SWITCH_STATE': ('state_file', _string),
	'SESSION_SWITCH_LOCK': ('lock_file', _string),
	'SESSION_SWITCH_PID_FILE': ('pid_file', _string),
	'SESSION_SWITCH_WAKE_MEMORY': ('wake_memory_file', _string),
	'SESSION_SWITCH_AUTOLOGIN': ('autologin_file', _string),
	'SESSION_SWITCH_KODI_SERVICE': ('kodi_service', _string),
	'SESSION_SWITCH_GAMING_SERVICE': ('gaming_service', _string),
	'SESSION_SWITCH_DRM_DEVICE': ('drm_device', _string),
}

def from_environ(environ=None):
	'''Build Settings from environment variables.'''
	if environ is None:
		environ = os.environ

	settings = Settings()
	for variable, (setting, parse) in environment_variables.items():
		value = environ.get(variable)
		if value is None or value == '':
			continue
		setattr(settings, setting, parse(variable, value))

	if settings.reduce_delays:
		settings.apply_reduced_delays()
	return settings

def get_config_files(environ=None):
	if environ is None:
		environ = os.environ
	config_dirs = environ.get('XDG_CONFIG_DIRS', '/etc').split(':')
	home = environ.get('HOME')
	config_home = environ.get('XDG_CONFIG_HOME', home + '/.config' if home else None)
	if config_home:
		config_dirs = [config_home] + config_dirs
	return [d + '/session-switch/config.py' for d in config_dirs if d]

# Load the settings: environment first, then the configuration file.
def load(environ=None):
	settings = from_environ(environ)

	for config_file in get_config_files(environ):
		if os.path.exists(config_file):
			log.debug('Loading configuration from %r.', config_file)

			# https://docs.python.org/3/library/importlib.html#importing-a-source-file-directly
			module_name = 'session_switch_user_config'
			spec = importlib.util.spec_from_file_location(module_name, config_file)
			module = importlib.util.module_from_spec(spec)
			sys.modules[module_name] = module
			spec.loader.exec_module(module)

			if hasattr(module, 'config'):
				module.config(settings)
			else:
				log.warning('%r does not define a config(settings) function.', config_file)
			break

	if settings.wake_method not in WAKE_METHODS:
		raise sessionswitch.UserError('Invalid wake method: %r' % (settings.wake_method,))
	if settings.start_attempts < 1:
		raise sessionswitch.UserError('start_attempts must be at least 1')

	return settings
