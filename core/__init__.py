"""ProtocolWall core: модели, хранилище, библиотека и агрегатор прогресса"""
