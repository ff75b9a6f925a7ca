"""
Image Classification Demo - Test Suite

Test modules mirror the package layout:
- tests/classifier_demo/: Tests for processing, model, config, session and API
"""
