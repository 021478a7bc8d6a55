from setuptools import setup

setup(
	name='kodi-session-switch',
	version='1.0.0',
	description='Kodi / gaming mode session switch handler',
	packages=['sessionswitch'],
	package_dir={'':'src'},
	python_requires='>=3.10',
	install_requires=[
		'dbus-python',
		'inotify_simple',
		'psutil',
	],
	extras_require={
		'test': [
			'pytest',
		],
	},
	entry_points={
		'console_scripts': [
			'session-switch=sessionswitch:main',
			'session-switch-handler=sessionswitch.daemon:main',
			'request-kodi=sessionswitch.request:request_kodi',
			'request-gamemode=sessionswitch.request:request_gamemode',
			'kodi-request-gamemode=sessionswitch.request:kodi_request_gamemode',
		]
	}
)
