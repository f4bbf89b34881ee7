"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- anthropic: Claude API client
- storage: Durable key-value storage for tracker data

These wrappers translate between external formats and our domain models.
"""
