"""Shared configuration and logging for the sequence engine"""
