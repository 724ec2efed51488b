"""Provisioner CLI commands"""
