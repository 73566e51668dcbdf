from django.db import models


class Role(models.TextChoices):
    PATIENT = "PATIENT", "Patient"
    DOCTOR = "DOCTOR", "Doctor"
    ADMIN = "ADMIN", "Admin"
    CASHIER = "CASHIER", "Cashier"
    LABORANT = "LABORANT", "Laborant"
    CLEANER = "CLEANER", "Cleaner"
