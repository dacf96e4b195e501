"""
PostPilot - social media scheduling and publishing service.

This package contains the core application logic for PostPilot, including:
- API endpoints for composing, scheduling and managing posts
- Platform adapters for LinkedIn, Twitter/X, Pinterest and Dev.to
- Quota and rate-limit tracking per plan and per connected account
- Cron-driven dispatch of scheduled posts
- Engagement metrics collection

Version: 1.0.0
Author: PostPilot Team
"""

__version__ = "1.0.0"
__author__ = "PostPilot Team"
__email__ = "team@postpilot.app"
__description__ = "Social media scheduling and publishing service"
