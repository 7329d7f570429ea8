"""HTTP surface: routers, dependencies and schemas."""
