from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import EndUser, Patient, Doctor, Pharmacy

@admin.register(EndUser)
class EndUserAdmin(BaseUserAdmin):
    list_display = ['identity_uid', 'email', 'name', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'created_at']
    search_fields = ['identity_uid', 'email', 'name']
    ordering = ['created_at']
    
    fieldsets = (
        (None, {'fields': ('identity_uid', 'username', 'password')}),
        ('Personal info', {'fields': ('name', 'email', 'preferences')}),
        ('Permissions', {'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined', 'created_at', 'updated_at', 'deleted_at')}),
    )
    
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('identity_uid', 'username', 'email', 'name', 'role', 'password1', 'password2'),
        }),
    )
    
    readonly_fields = ['created_at', 'updated_at']

@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['user', 'gender', 'date_of_birth', 'phone']
    list_filter = ['gender']
    search_fields = ['user__name', 'phone']

@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ['user', 'specialization', 'phone', 'fee_first_visit', 'fee_follow_up']
    list_filter = ['specialization']
    search_fields = ['user__name', 'specialization']
    filter_horizontal = ['linked_pharmacies']

@admin.register(Pharmacy)
class PharmacyAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'phone', 'created_at']
    search_fields = ['name', 'address', 'owner__name']
    readonly_fields = ['created_at', 'updated_at']
