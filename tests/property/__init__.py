"""
Property-based tests for AuditReady.

This package contains Hypothesis-based property tests that check scoring,
aggregation and repair invariants across generated batches and specs.
"""
