"""ProtocolWall REST API"""
