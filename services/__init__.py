"""Доменные сервисы"""
