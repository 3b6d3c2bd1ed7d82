"""
Test suite for the redundancy keeper.

Run all tests:
    pytest tests/ -v

Skip the threaded tests:
    pytest tests/ -m "not concurrency"
"""
