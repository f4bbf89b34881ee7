"""
VeloVibe - a personal workout log with calorie trends and AI coaching.

This package contains the complete application:
- core: Framework-agnostic tracking and coaching logic
- infrastructure: Storage and Claude API integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
