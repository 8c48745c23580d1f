"""Flynest booking lifecycle service."""
