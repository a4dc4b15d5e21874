"""Core data models"""
