"""Benchmark toolkit, REST relay node actions and a Kubernetes manifest generator."""

__version__ = "1.0.0"