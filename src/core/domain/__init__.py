"""Dominio del cliente: sesión, perfil de onboarding, plan y conversación.

Por qué un paquete aparte:
- Los modelos Pydantic normalizan aquí las respuestas del backend.
- Gate, entitlement y chat solo ven estas formas, nunca JSON crudo.
"""
