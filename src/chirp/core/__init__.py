"""Configuration, security and cross-cutting helpers."""
