"""Tests for the API core: settings, logging and problem-detail errors."""
