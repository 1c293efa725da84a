"""Core gameplay primitives (sequencing, pacing, stats, ranking and the engine).

Kept free of FastAPI and Redis concerns so it can be driven by API routes, a CLI, or tests.
"""
