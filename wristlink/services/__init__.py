"""
WristLink Services

- transport/ - Transport contract and the loopback implementation
- session/   - Session controller and the wearable service process
"""
