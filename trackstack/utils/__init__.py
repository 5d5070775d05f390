"""
Track Your Stack - Utilities
"""
