"""Fingerprinting, change classification, diff reports and sync plans."""
