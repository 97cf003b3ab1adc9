from django.contrib import admin
from .models import StockItem, Prescription, PrescriptionMedicine, OfflineOrder, OfflineOrderLine

@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ['medicine_name', 'pharmacy', 'quantity', 'price', 'updated_at']
    list_filter = ['pharmacy']
    search_fields = ['medicine_name', 'pharmacy__name']
    readonly_fields = ['created_at', 'updated_at']

class PrescriptionMedicineInline(admin.TabularInline):
    model = PrescriptionMedicine
    extra = 0

@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'doctor', 'pharmacy', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'patient__user__name', 'doctor__user__name', 'pharmacy__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [PrescriptionMedicineInline]

class OfflineOrderLineInline(admin.TabularInline):
    model = OfflineOrderLine
    extra = 0
    readonly_fields = ['name', 'quantity', 'status', 'stock_item']

@admin.register(OfflineOrder)
class OfflineOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'pharmacy', 'created_by', 'created_at']
    list_filter = ['pharmacy', 'created_at']
    search_fields = ['id', 'pharmacy__name', 'lines__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [OfflineOrderLineInline]
