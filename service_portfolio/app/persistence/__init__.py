"""
Relational persistence for the portfolio service.
"""
