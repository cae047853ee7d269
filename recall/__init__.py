"""Recall sheet AI service: provider gateway, response extraction, study content pipeline and the .recall format."""
