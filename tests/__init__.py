"""
Test suite for Embedding Clustering.

This package contains all tests organized by component:
- test_algorithms/: Tests for the clustering engines and metrics
- test_providers/: Tests for stores, the HTTP client and chat providers
- test_services/: Tests for the ClusterService facade and its helpers
"""
