"""
WeaveVault core: encodings, keys, data model and error types.
"""
