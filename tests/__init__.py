"""
Test suite for the Internet Hospital service.

Contains unit tests for the scheduling core and integration tests for the API.
"""
