"""
Meal analysis dynamic processor.

Turns one free-form request (photo, text description, correction, batch of
meal names, meal-plan request) into a single prompt for a generative
vision/language backend, and turns the backend's loosely-structured reply
back into a validated result.

Structure:
- domain/: request/result models, prompt assembly, reply extraction
- infrastructure/: outbound AI transport
- application/: request routing pipeline
- api/: HTTP endpoint
"""

__version__ = "1.0.0"
