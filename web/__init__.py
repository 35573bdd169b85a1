"""Web layer"""
