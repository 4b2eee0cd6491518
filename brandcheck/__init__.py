"""
Marketplace brand presence checker.
"""
