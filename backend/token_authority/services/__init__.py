"""Application services: token lifecycle orchestration over the ports."""
