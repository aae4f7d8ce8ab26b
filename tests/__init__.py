"""
Test suite for the stock movement core.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_batch_submitter.py -v
"""
