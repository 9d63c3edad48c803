"""
Security module for signing keys and certificate material
"""
