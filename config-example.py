# Sample session-switch configuration file.
# Install as /etc/session-switch/config.py.

# The configuration file defines a function, config, which receives
# the settings (already initialized from the environment, i.e.
# /etc/sysconfig/session-switch-handler) and may change any of them.
# Run "session-switch config" to see all settings and their values.

import os

def config(settings):
	# The render node is a better readiness signal on multi-GPU
	# machines, where card0 may be the wrong card.
	if os.path.exists('/dev/dri/by-path/pci-0000:03:00.0-render'):
		settings.drm_device = '/dev/dri/by-path/pci-0000:03:00.0-render'

	# Some TVs take a long time to come out of standby.
	settings.process_appear_timeout = 20

	# Also get rid of the Steam client's helpers when leaving gaming mode.
	settings.gaming_processes = settings.gaming_processes + ('steam-runtime-launcher-service',)

	# Fast switching on this machine.  Setting reduce_delays here does
	# not affect the delays by itself; apply them explicitly.
	settings.reduce_delays = True
	settings.apply_reduced_delays()
