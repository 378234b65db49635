"""Application layer - task scheduling and acquisition services."""
