import importlib.util

import pytest

from sessionswitch import config, state, switch


def pytest_report_header():
	if importlib.util.find_spec('dbus') is None:
		return 'dbus-python: not installed, tests/test_systemd.py will be skipped'
	return 'dbus-python: installed'


class FakeServices:
	'''Service manager double.  Records mutating calls into `events`.'''

	def __init__(self, events, active=()):
		self.events = events
		self.active = set(active)
		# unit -> number of upcoming start() calls which fail
		self.start_failures = {}
		self.stop_failures = set()

	def active_state(self, unit):
		return 'active' if unit in self.active else 'inactive'

	def is_active(self, unit):
		return unit in self.active

	def start(self, unit):
		self.events.append(('start', unit))
		if self.start_failures.get(unit, 0) > 0:
			self.start_failures[unit] -= 1
			return False
		self.active.add(unit)
		return True

	def stop(self, unit):
		self.events.append(('stop', unit))
		if unit in self.stop_failures:
			return False
		self.active.discard(unit)
		return True

	def reset_failed(self, unit):
		self.events.append(('reset_failed', unit))
		return True

	def count(self, kind, unit):
		return self.events.count((kind, unit))


class FakeProcesses:
	def __init__(self, events):
		self.events = events
		self.appear = True
		self.on_wait = None

	def terminate(self, names, force=False):
		self.events.append(('terminate', tuple(names), force))
		return True

	def wait_for(self, names, timeout):
		self.events.append(('wait_for', tuple(names)))
		if self.on_wait is not None:
			self.on_wait()
		return self.appear


class FakeDisplay:
	def __init__(self, events):
		self.events = events
		self.device_ready = True

	def wait_for_device(self):
		self.events.append(('wait_for_device',))
		return self.device_ready

	def ensure_vt(self):
		self.events.append(('ensure_vt',))

	def wake(self):
		self.events.append(('wake',))
		return True


@pytest.fixture
def settings(tmp_path):
	s = config.Settings()
	s.trigger_file = str(tmp_path / 'session-switch-request')
	s.state_file = str(tmp_path / 'lib' / 'session-state')
	s.lock_file = str(tmp_path / 'session-switch.lock')
	s.pid_file = str(tmp_path / 'session-switch-handler.pid')
	s.wake_memory_file = str(tmp_path / 'lib' / 'wake-method')
	s.autologin_file = str(tmp_path / 'sddm.conf.d' / 'zz-steamos-autologin.conf')
	s.drm_device = str(tmp_path / 'card0')
	s.vt_active_file = str(tmp_path / 'tty0-active')

	for name in (
		'delay_gaming_stop',
		'delay_kodi_start',
		'delay_kodi_stop',
		'delay_drm_settle',
		'delay_vt_switch',
		'delay_process_kill',
		'start_backoff',
		'drm_wait_interval',
		'process_appear_timeout',
		'service_timeout',
		'service_poll_interval',
	):
		setattr(s, name, 0)
	return s


@pytest.fixture
def events():
	return []


@pytest.fixture
def services(events):
	return FakeServices(events)


@pytest.fixture
def processes(events):
	return FakeProcesses(events)


@pytest.fixture
def display(events):
	return FakeDisplay(events)


@pytest.fixture
def store(settings):
	return state.StateStore(settings.state_file)


@pytest.fixture
def handler(settings, services, processes, display, store):
	return switch.Handler(settings, services, processes, display, store)
