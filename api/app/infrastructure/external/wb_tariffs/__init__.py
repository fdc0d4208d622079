"""
Cliente de la API de tarifas (Wildberries).

Obtiene la lista completa de tarifas vigentes. Sin estado: no guarda
cursores ni persiste nada; el orquestador decide qué hacer con el resultado.
"""
