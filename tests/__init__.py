"""Messenger Test Suite.

Test Structure:
- unit/: Unit tests for individual modules, using fake sockets and mocked HTTP
- integration/: SMTP client against a scripted server on a loopback socket
"""
