"""Domain layer: entities, condition rules, and the pricing calculator.

This layer depends only on stdlib and pydantic.
It must never import from services, commands, output, or config.
"""
