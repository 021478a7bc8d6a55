import os

import pytest

# dbus-python is an install requirement, so CI must not quietly skip
# these; local runs without it may.
if os.environ.get('CI'):
	import dbus
else:
	dbus = pytest.importorskip('dbus', reason='dbus-python is not installed')

from sessionswitch import systemd


class FakeSystemd:
	'''Stands in for both the systemd manager object and unit objects.'''

	def __init__(self):
		self.states = {}
		self.calls = []
		# unit -> ActiveState after a StartUnit
		self.start_outcome = {}
		self.fail_with = None

	# Bus
	def get_object(self, bus_name, object_path):
		assert bus_name == systemd.SYSTEMD_BUS_NAME
		if object_path == systemd.SYSTEMD_OBJECT_PATH:
			return self
		return FakeUnit(self, object_path.rsplit('/', 1)[-1])

	# Proxy protocol used by dbus.Interface
	def get_dbus_method(self, member, dbus_interface=None):
		assert dbus_interface == systemd.MANAGER_INTERFACE
		return getattr(self, member)

	def _check(self):
		if self.fail_with is not None:
			raise dbus.exceptions.DBusException(self.fail_with)

	def LoadUnit(self, unit):
		self._check()
		return '/org/freedesktop/systemd1/unit/' + unit

	def StartUnit(self, unit, mode):
		self._check()
		self.calls.append(('StartUnit', unit, mode))
		self.states[unit] = self.start_outcome.get(unit, 'active')
		return '/org/freedesktop/systemd1/job/1'

	def StopUnit(self, unit, mode):
		self._check()
		self.calls.append(('StopUnit', unit, mode))
		self.states[unit] = 'inactive'
		return '/org/freedesktop/systemd1/job/2'

	def ResetFailedUnit(self, unit):
		self._check()
		self.calls.append(('ResetFailedUnit', unit))


class FakeUnit:
	def __init__(self, manager, unit):
		self.manager = manager
		self.unit = unit

	def Get(self, interface, prop, dbus_interface=None):
		assert interface == systemd.UNIT_INTERFACE
		assert prop == 'ActiveState'
		assert dbus_interface == systemd.PROPERTIES_INTERFACE
		return self.manager.states.get(self.unit, 'inactive')


@pytest.fixture
def bus():
	return FakeSystemd()


@pytest.fixture
def services(settings, bus):
	return systemd.ServiceManager(settings, bus=bus)


def test_is_active(services, bus):
	assert services.is_active('kodi-gbm.service') is False

	bus.states['kodi-gbm.service'] = 'active'
	assert services.is_active('kodi-gbm.service') is True
	assert services.active_state('kodi-gbm.service') == 'active'


def test_start(services, bus):
	assert services.start('kodi-gbm.service') is True
	assert bus.calls == [('StartUnit', 'kodi-gbm.service', 'replace')]


def test_start_into_failed_state(services, bus):
	bus.start_outcome['kodi-gbm.service'] = 'failed'

	assert services.start('kodi-gbm.service') is False


def test_start_that_never_settles(services, bus):
	bus.start_outcome['kodi-gbm.service'] = 'activating'

	assert services.start('kodi-gbm.service') is False


def test_stop(services, bus):
	bus.states['sddm.service'] = 'active'

	assert services.stop('sddm.service') is True
	assert bus.states['sddm.service'] == 'inactive'


def test_reset_failed(services, bus):
	assert services.reset_failed('sddm.service') is True
	assert bus.calls == [('ResetFailedUnit', 'sddm.service')]


def test_bus_errors_become_failures(services, bus):
	bus.fail_with = 'org.freedesktop.DBus.Error.AccessDenied'

	assert services.is_active('sddm.service') is False
	assert services.start('sddm.service') is False
	assert services.stop('sddm.service') is False
	assert services.reset_failed('sddm.service') is False
