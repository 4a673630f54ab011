"""Contratos del Core hacia el backend remoto.

Por qué:
- `BackendAPI` es lo único que los servicios conocen del servidor.
- Los tests lo implementan con un fake en memoria.
"""
