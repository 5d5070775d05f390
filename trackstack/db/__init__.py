"""
Track Your Stack - Persistence layer
"""
