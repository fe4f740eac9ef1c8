"""Launchpad -- deployment orchestration for the Railway and Netlify CLIs."""

__version__ = "0.1.0"
