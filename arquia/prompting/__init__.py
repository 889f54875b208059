"""Prompting package.

This package contains deterministic prompt-construction helpers used by the
state holders and the proxy backend. It does not perform validation, transport
selection, or model invocation.
"""
