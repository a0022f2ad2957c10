"""Reviewer-side services: per-round verification and batch matching."""
