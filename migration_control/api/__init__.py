"""
API module for the Migration Control plane.

This module contains the transport-independent protocol handler and the
FastAPI application that serves it.
"""
