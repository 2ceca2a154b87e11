"""Helpdesk ticketing application."""
