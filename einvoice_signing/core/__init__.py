"""
Core signature pipeline: canonicalization, digests, signed properties,
envelope assembly, extension embedding and verification.
"""
