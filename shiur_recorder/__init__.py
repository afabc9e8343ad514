"""Shiur Recorder - unattended voice-activated lecture recorder"""

__version__ = '1.0.0'
