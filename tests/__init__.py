"""
Voice Rechunker Tests
=====================

This package contains unit tests for the voice rechunker components.

Test Structure:
- test_rechunker_*.py: Tests for the rechunking algorithm and its parts
- test_segmenter.py, test_session.py: Tests for the worker threads and session
- test_config.py: Tests for configuration management
- conftest.py: Shared test fixtures and frame factories

To run tests:
    pytest tests/

To run with coverage:
    pytest tests/ --cov=voice_rechunker

To run specific test file:
    pytest tests/test_rechunker_state_machine.py
"""
