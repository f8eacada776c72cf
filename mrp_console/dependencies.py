"""Shared FastAPI dependencies."""

from fastapi import Request

from mrp_console.adapters.erpai import ERPAIClient


def get_erpai(request: Request) -> ERPAIClient:
    """The process-wide ERPAI client created in the app lifespan."""
    return request.app.state.erpai
