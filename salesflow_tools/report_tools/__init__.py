"""Allure report helpers for the Salesflow suite."""
