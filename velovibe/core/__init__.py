"""
Core business logic for workout tracking and coaching.

This module is framework-agnostic - it doesn't import FastAPI, the Anthropic
SDK, or any storage backend. This separation means we can test the tracking
and coaching logic in isolation and swap infrastructure if needed.
"""
