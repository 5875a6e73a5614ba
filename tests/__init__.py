"""
CLAWSE Test Suite
=================

Test organization:
- tests/unit/                       - Shared library tests (models, errors, LLM helpers)
- tests/services/compliance_engine/ - Engine and HTTP boundary tests

No test needs network access, LLM credentials or a database: external
collaborators are replaced by the fakes in tests/helpers.py or by mocks.

Run tests:
    pytest                                   # All tests
    pytest tests/unit                        # Shared library only
    pytest tests/services/compliance_engine  # Engine only
"""
