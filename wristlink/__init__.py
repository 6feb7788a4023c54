"""
WristLink - Wearable Companion Session Protocol

Keeps a wearable's mirror of the host's "system enabled" flag in sync and
delivers one-shot SOS commands to the host:
- common/    - Config, exceptions, structured logging
- protocol/  - Wire message codec (tagged union)
- services/  - Transport contract, loopback transport, session controller
- simulator/ - Virtual phone host for local runs and tests
"""

__version__ = "1.0.0"
