"""Test suite for the rollup engine."""
