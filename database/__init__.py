"""Слой доступа к данным"""
