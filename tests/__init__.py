"""
Test suite for the SSCA scenario engine

- Unit tests for the lever model, estimator and Pareto synthesizer
- Playback controller tests driven by synthetic ticks and fake optimizers
- Playbook store consistency tests against an in-memory backend
- HTTP client tests using httpx.MockTransport (no real HTTP calls)
"""
