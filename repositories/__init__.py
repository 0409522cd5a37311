"""
repositories/ - Data Access Layer
==================================
StatementBuilder turns validated input into parameterized SQL;
TableRepository runs those statements against the owning database.
"""
