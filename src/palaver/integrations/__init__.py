"""Backend integrations."""

from palaver.integrations.republic_client import RepublicConnector, build_llm

__all__ = ["RepublicConnector", "build_llm"]
