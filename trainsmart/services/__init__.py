"""Session-level services: user state, identity and training flows"""
