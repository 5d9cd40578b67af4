"""
CLI module for the Migration Control plane.

This module contains the command-line interface and the HTTP client it
uses to reach the control-plane server.
"""
