"""
roombot Test Suite
==================

Test Organization
-----------------
- tests/unit/ : Fast unit tests with fakes for time and HTTP (no network)

Testing Philosophy
------------------
- Inject clocks, sleeps and sessions instead of patching globals
- Follow AAA pattern: Arrange, Act, Assert
"""
