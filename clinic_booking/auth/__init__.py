"""
Authentication module for the clinic booking system.

This module provides authentication and authorization functionality including:
- User self-registration
- JWT token authentication
- Role-based access control (user / admin)
"""
