"""Миграции схемы базы данных"""
