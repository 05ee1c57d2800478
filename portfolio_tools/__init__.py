"""
Client-side toolkit for the laundromatzat portfolio tools.
"""
