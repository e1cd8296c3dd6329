"""Обработчики команд бота"""
