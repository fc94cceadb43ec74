#!/usr/bin/env python3
"""
Setup script for TextSwitch
"""

from setuptools import setup, find_packages
import os
import sys

# Read the version from the package
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from textswitch import __version__

# README is the long_description
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='textswitch',
    version=__version__,
    description='Retype text typed in the wrong keyboard layout (Linux / X11)',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'docs']),
    python_requires='>=3.9',
    install_requires=[
        'evdev',         # Virtual keyboard (uinput) for shortcuts and BackSpace
        'python-xlib',   # Focused window, selection owners
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-cov',
            'pytest-timeout',
        ],
    },
    entry_points={
        'console_scripts': [
            'textswitch=textswitch.cli:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Utilities',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Operating System :: POSIX :: Linux',
        'Environment :: X11 Applications',
        'Topic :: Desktop Environment',
    ],
)
