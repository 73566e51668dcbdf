# clinic_core/iam/admin.py
from django.contrib import admin

from clinic_core.iam.models import Administrator, Doctor, Laborant, UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("user__username", "user__email", "user__first_name", "user__last_name")


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "specialization")
    search_fields = ("user__username", "user__first_name", "user__last_name", "specialization")


@admin.register(Administrator)
class AdministratorAdmin(admin.ModelAdmin):
    list_display = ("id", "user")
    search_fields = ("user__username",)


@admin.register(Laborant)
class LaborantAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "lab_section")
    search_fields = ("user__username", "user__first_name", "user__last_name")
