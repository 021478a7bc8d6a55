# sessionswitch.display - GPU device readiness and display wake-up

import os
import shutil
import subprocess

from sessionswitch.logging import log
from sessionswitch.util import pause, retry

# Display wake techniques.
DDC = 'ddc'        # Monitor power-on over DDC/CI.
VT = 'vt'          # Switch away from the target VT and back.
NONE = 'none'      # Nothing applicable / nothing needed.

TECHNIQUES = (DDC, VT, NONE)

# DDC/CI VCP feature D6 is the power mode; value 01 is "on".
DDCUTIL_POWER_ON = ['setvcp', 'd6', '01']

class WakeMemory:
	'''Remembers which wake technique worked last time, so that a known
	ineffective one can be skipped.  Purely advisory.'''

	def __init__(self, path=None):
		self.path = path
		self.technique = None
		self.log = log.getChild('display')

	def load(self):
		if self.path is None:
			return
		try:
			with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
				technique = f.read().strip()
		except FileNotFoundError:
			return
		except OSError as e:
			self.log.debug('Could not read wake memory %r: %s', self.path, e)
			return
		if technique in TECHNIQUES:
			self.technique = technique

	def remember(self, technique):
		if technique == self.technique:
			return
		self.technique = technique
		if self.path is None:
			return
		try:
			os.makedirs(os.path.dirname(self.path), exist_ok=True)
			with open(self.path, 'w', encoding='utf-8') as f:
				f.write(technique + '\n')
		except OSError as e:
			self.log.debug('Could not save wake memory %r: %s', self.path, e)


class Display:
	def __init__(self, settings, memory=None):
		self.log = log.getChild('display')
		self.settings = settings
		self.memory = memory if memory is not None else WakeMemory()

	# -------------------------------------------------------------------------
	# Device readiness

	def wait_for_device(self) -> bool:
		s = self.settings
		if s.skip_drm_wait:
			return True

		if not retry(s.drm_wait_attempts, s.drm_wait_interval,
					 lambda: os.path.exists(s.drm_device)):
			self.log.error('DRM device %s not found after waiting.', s.drm_device)
			return False

		pause(s.delay_drm_settle)
		return True

	# -------------------------------------------------------------------------
	# Virtual terminals

	def current_vt(self):
		'''Returns the number of the active VT, or None if unknown.'''
		try:
			with open(self.settings.vt_active_file, 'r', encoding='ascii') as f:
				name = f.read().strip()
		except OSError as e:
			self.log.debug('Could not read active VT: %s', e)
			return None
		if name.startswith('tty') and name[3:].isdigit():
			return int(name[3:])
		return None

	def switch_vt(self, vt) -> bool:
		try:
			subprocess.run(['chvt', str(vt)], check=True,
						   stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
		except (OSError, subprocess.CalledProcessError) as e:
			self.log.warning('Could not switch to VT %d: %s', vt, e)
			return False
		self.log.debug('Switched to VT %d.', vt)
		return True

	def ensure_vt(self):
		'''Make the standalone session's VT the active one.'''
		s = self.settings
		if s.skip_vt_switch:
			return
		if self.current_vt() == s.target_vt:
			return
		if self.switch_vt(s.target_vt):
			pause(s.delay_vt_switch)

	# -------------------------------------------------------------------------
	# Display wake-up

	def wake_ddc(self) -> bool:
		ddcutil = shutil.which('ddcutil')
		if ddcutil is None:
			self.log.debug('ddcutil is not installed.')
			return False
		try:
			subprocess.run([ddcutil, *DDCUTIL_POWER_ON], check=True, timeout=10,
						   stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
		except (OSError, subprocess.SubprocessError) as e:
			self.log.debug('ddcutil power-on failed: %s', e)
			return False
		return True

	def wake_vt(self) -> bool:
		s = self.settings
		if self.current_vt() != s.target_vt:
			# Switching to the target VT is enough to make the kernel
			# re-probe the display.
			return self.switch_vt(s.target_vt)
		if not self.switch_vt(s.bounce_vt):
			return False
		pause(s.delay_vt_switch)
		return self.switch_vt(s.target_vt)

	def get_techniques(self):
		s = self.settings
		match s.wake_method:
			case 'none':
				techniques = []
			case 'vt':
				techniques = [VT]
			case 'ddcutil':
				techniques = [DDC, VT]
			case _:  # auto
				if self.memory.technique == NONE:
					techniques = []
				elif self.memory.technique == VT:
					techniques = [VT, DDC]
				else:
					techniques = [DDC, VT]
		if s.skip_vt_switch:
			techniques = [t for t in techniques if t != VT]
		return techniques

	def wake(self) -> bool:
		'''Try to wake up a sleeping display.  Never raises.
		Returns True if a technique succeeded (or none was wanted).'''
		if self.settings.skip_display_wake or self.settings.wake_method == 'none':
			return True

		techniques = self.get_techniques()
		if not techniques:
			self.log.debug('No display wake technique applicable.')
			return True

		methods = {DDC: self.wake_ddc, VT: self.wake_vt}
		for technique in techniques:
			if methods[technique]():
				self.log.debug('Display woken via %s.', technique)
				if self.settings.wake_method == 'auto':
					self.memory.remember(technique)
				return True

		if self.settings.wake_method == 'auto' and self.settings.skip_vt_switch and shutil.which('ddcutil') is None:
			# Nothing we can do here; don't try again next time.
			self.memory.remember(NONE)
		self.log.warning('Could not wake the display (tried: %s).', ', '.join(techniques))
		return False
