"""Clinic application for the hospital appointment system.

This package holds the models, services, views and route registrations
for patients, doctors and administrators: booking and rescheduling
appointments, prescriptions, feedback, messaging and notifications.
"""
