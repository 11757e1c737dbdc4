"""Ownly push: Web Push delivery service (aes128gcm payloads, VAPID authorization)."""

__version__ = "0.1.0"
