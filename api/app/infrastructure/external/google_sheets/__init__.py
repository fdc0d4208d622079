"""
Publicación de snapshots en Google Sheets (API REST v4).

La lista de tablas destino es configuración inyectada; cada publicación
sobrescribe la hoja configurada desde A1.
"""
