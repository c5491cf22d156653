"""Shared test doubles for the HealthSync test suite."""
