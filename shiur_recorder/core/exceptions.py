"""
Custom exceptions for the shiur recorder application
"""


class ShiurRecorderError(Exception):
    """Base exception for shiur recorder errors"""
    pass


class ConfigurationError(ShiurRecorderError):
    """Raised when configuration is invalid or missing"""
    pass


class ContainerInitializationError(ShiurRecorderError):
    """Raised when dependency injection container fails to initialize"""
    pass


class AudioInputError(ShiurRecorderError):
    """Raised when audio input fails"""
    pass


class InputUnavailableError(AudioInputError):
    """Raised when the input device is missing or access is denied"""
    pass


class EncoderError(ShiurRecorderError):
    """Raised when samples cannot be encoded into an audio container"""
    pass


class ExportError(ShiurRecorderError):
    """Raised when an encoded recording cannot be persisted"""
    pass


class SessionStateError(ShiurRecorderError):
    """Raised when a session operation is called in the wrong state"""
    pass
