"""
Configuration for the certificate verifier and its logging, read from
YAML documents.
"""
