"""
Stumper Engine Test Suite
=========================

Test Organization
-----------------
- tests/unit/          : Pure functions and in-memory components, no database
- tests/integration/   : Services against a real database (SQLite by default,
                         PostgreSQL via testcontainers with STUMPER_TEST_POSTGRES=1)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test rules and edge cases exhaustively
- Integration tests: Exercise transactions, unique constraints and races
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
