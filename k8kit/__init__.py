"""Kubernetes configuration loading, URI helpers, a REST API client and Minikube setup."""

__version__ = "0.1.0"