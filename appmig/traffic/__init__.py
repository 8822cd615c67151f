# CUI // SP-CTI
"""Traffic migration: data model, revision resolution and the step orchestrator."""
