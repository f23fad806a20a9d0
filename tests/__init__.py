"""
Test suite for bullion-engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
