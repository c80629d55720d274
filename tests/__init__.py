"""
Gateway Client Test Suite

This package contains all tests for the gateway client including:
- Unit tests for the token cache
- Operation dispatch and envelope handling tests
- Request validation and cancellation tests
- Integration tests against the sandbox gateway
"""
