"""
Core infrastructure: configuration, logging, errors, timestamps and the
feature registry.
"""
