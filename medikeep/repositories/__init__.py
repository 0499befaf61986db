"""
Persistence adapters.

SQLRepository is the record store; the filesystem asset store keeps uploaded
profile images. Services depend on these instead of touching sessions or
paths directly.
"""
