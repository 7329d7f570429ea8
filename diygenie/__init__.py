"""
DIY Genie - home-improvement project backend.

Tracks projects from a room photo through an optional AI preview to a
normalized build plan and step-by-step progress, gated by subscription tier.
"""
__version__ = "1.0.0"
