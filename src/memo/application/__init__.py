"""Application services: orchestration over the domain ports."""
