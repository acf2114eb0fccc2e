"""Panel switch for Bluetooth audio: A2DP stereo or headset with microphone."""

__version__ = "0.1.0"
