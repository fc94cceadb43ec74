"""TextSwitch — retype text that was typed in the wrong keyboard layout."""

__version__ = "1.0.0"
