# sessionswitch.systemd - service manager access
# Starts, stops and queries units through systemd's D-Bus API on the
# system bus.

import dbus

from sessionswitch.logging import log
from sessionswitch.util import retry

SYSTEMD_BUS_NAME = 'org.freedesktop.systemd1'
SYSTEMD_OBJECT_PATH = '/org/freedesktop/systemd1'
MANAGER_INTERFACE = 'org.freedesktop.systemd1.Manager'
UNIT_INTERFACE = 'org.freedesktop.systemd1.Unit'
PROPERTIES_INTERFACE = 'org.freedesktop.DBus.Properties'

class ServiceManager:
	def __init__(self, settings, bus=None):
		self.log = log.getChild('systemd')
		self.settings = settings
		self._bus = bus

	@property
	def bus(self):
		if self._bus is None:
			self._bus = dbus.SystemBus()
		return self._bus

	def _manager(self):
		obj = self.bus.get_object(SYSTEMD_BUS_NAME, SYSTEMD_OBJECT_PATH)
		return dbus.Interface(obj, dbus_interface=MANAGER_INTERFACE)

	# Returns the unit's ActiveState: active, inactive, failed,
	# activating, deactivating, ...
	# Raises DBusException if systemd cannot be asked.
	def active_state(self, unit):
		# LoadUnit (unlike GetUnit) also works for units which are
		# not currently loaded.
		unit_path = self._manager().LoadUnit(unit)
		obj = self.bus.get_object(SYSTEMD_BUS_NAME, unit_path)
		return str(obj.Get(UNIT_INTERFACE, 'ActiveState',
						   dbus_interface=PROPERTIES_INTERFACE))

	def is_active(self, unit) -> bool:
		try:
			state = self.active_state(unit)
		except dbus.exceptions.DBusException as e:
			self.log.warning('Could not query %s: %s', unit, e.get_dbus_message())
			return False
		self.log.trace('%s is %s.', unit, state)
		return state == 'active'

	# Wait for the unit to reach one of the given states.
	def _settle(self, unit, states):
		s = self.settings
		attempts = max(1, int(s.service_timeout / s.service_poll_interval)) if s.service_poll_interval > 0 else 1
		def settled():
			state = self.active_state(unit)
			return state if state in states else None
		return retry(attempts, s.service_poll_interval, settled)

	def start(self, unit) -> bool:
		self.log.debug('Starting %s...', unit)
		try:
			self._manager().StartUnit(unit, 'replace')
			state = self._settle(unit, ('active', 'failed'))
		except dbus.exceptions.DBusException as e:
			self.log.error('Failed to start %s: %s', unit, e.get_dbus_message())
			return False

		if state != 'active':
			self.log.error('%s did not become active (state: %s).', unit, state or 'timed out')
			return False
		self.log.debug('Started %s.', unit)
		return True

	def stop(self, unit) -> bool:
		self.log.debug('Stopping %s...', unit)
		try:
			self._manager().StopUnit(unit, 'replace')
			state = self._settle(unit, ('inactive', 'failed'))
		except dbus.exceptions.DBusException as e:
			self.log.error('Failed to stop %s: %s', unit, e.get_dbus_message())
			return False

		if state is None:
			self.log.error('%s did not stop in time.', unit)
			return False
		self.log.debug('Stopped %s.', unit)
		return True

	def reset_failed(self, unit) -> bool:
		try:
			self._manager().ResetFailedUnit(unit)
		except dbus.exceptions.DBusException as e:
			# Also raised when the unit is simply not loaded.
			self.log.debug('Could not reset failed state of %s: %s', unit, e.get_dbus_message())
			return False
		self.log.debug('Reset failed state of %s.', unit)
		return True
