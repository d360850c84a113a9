"""Model access: Gemini on Vertex AI behind the ModelGateway protocol."""
