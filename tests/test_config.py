import pytest

import sessionswitch
from sessionswitch import config


@pytest.fixture
def environ(tmp_path):
	# Keep the real /etc and ~/.config out of the picture.
	return {
		'XDG_CONFIG_HOME': str(tmp_path / 'home-config'),
		'XDG_CONFIG_DIRS': str(tmp_path / 'etc'),
	}


def test_defaults(environ):
	settings = config.load(environ)

	assert settings.trigger_file == '/run/session-switch-request'
	assert settings.state_file == '/var/lib/session-state'
	assert settings.kodi_service == 'kodi-gbm.service'
	assert settings.gaming_service == 'sddm.service'
	assert settings.start_attempts == 2
	assert settings.delay_gaming_stop == 3
	assert settings.wake_method == 'auto'
	assert settings.skip_display_wake is False


def test_environment_overrides(environ):
	environ.update({
		'SKIP_DISPLAY_WAKE': '1',
		'SKIP_VT_SWITCH': '0',
		'WAKE_METHOD': 'VT',
		'HEALTH_CHECK_INTERVAL': '15',
		'SESSION_SWITCH_TRIGGER': '/tmp/request',
		'SESSION_SWITCH_GAMING_SERVICE': 'gdm.service',
	})

	settings = config.load(environ)

	assert settings.skip_display_wake is True
	assert settings.skip_vt_switch is False
	assert settings.wake_method == 'vt'
	assert settings.health_interval == 15
	assert settings.trigger_file == '/tmp/request'
	assert settings.gaming_service == 'gdm.service'


def test_reduce_delays(environ):
	environ['REDUCE_DELAYS'] = '1'

	settings = config.load(environ)

	assert settings.delay_gaming_stop == 0.5
	assert settings.delay_drm_settle == 0.2
	assert settings.delay_vt_switch == 0.1
	assert settings.delay_process_kill == 0.2


def test_empty_values_are_ignored(environ):
	environ['WAKE_METHOD'] = ''

	assert config.load(environ).wake_method == 'auto'


@pytest.mark.parametrize('variable, value', [
	('SKIP_DRM_WAIT', 'yes'),
	('WAKE_METHOD', 'xrandr'),
	('HEALTH_CHECK_INTERVAL', '-1'),
])
def test_invalid_values(environ, variable, value):
	environ[variable] = value

	with pytest.raises(sessionswitch.UserError):
		config.load(environ)


def test_config_file(environ, tmp_path):
	config_dir = tmp_path / 'etc' / 'session-switch'
	config_dir.mkdir(parents=True)
	(config_dir / 'config.py').write_text(
		'def config(settings):\n'
		'\tsettings.drm_device = "/dev/dri/renderD128"\n'
		'\tsettings.start_attempts = 3\n'
	)

	settings = config.load(environ)

	assert settings.drm_device == '/dev/dri/renderD128'
	assert settings.start_attempts == 3


def test_user_config_file_wins(environ, tmp_path):
	for directory, attempts in ((tmp_path / 'home-config', 4), (tmp_path / 'etc', 5)):
		(directory / 'session-switch').mkdir(parents=True)
		(directory / 'session-switch' / 'config.py').write_text(
			'def config(settings):\n\tsettings.start_attempts = %d\n' % attempts
		)

	assert config.load(environ).start_attempts == 4


def test_config_file_validation(environ, tmp_path):
	config_dir = tmp_path / 'etc' / 'session-switch'
	config_dir.mkdir(parents=True)
	(config_dir / 'config.py').write_text('def config(settings):\n\tsettings.start_attempts = 0\n')

	with pytest.raises(sessionswitch.UserError):
		config.load(environ)


def test_get_config_files_order(environ, tmp_path):
	environ['XDG_CONFIG_DIRS'] = '/etc/xdg:/etc'

	assert config.get_config_files(environ) == [
		str(tmp_path / 'home-config') + '/session-switch/config.py',
		'/etc/xdg/session-switch/config.py',
		'/etc/session-switch/config.py',
	]


def test_items_lists_settings(environ):
	names = dict(config.load(environ).items())

	assert names['kodi_service'] == 'kodi-gbm.service'
	assert 'items' not in names
	assert 'apply_reduced_delays' not in names
