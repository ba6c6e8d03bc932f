from django.contrib import admin

from .models import StoredFile


@admin.register(StoredFile)
class StoredFileAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'mime_type', 'size', 'origin', 'project', 'created_by', 'created_at']
    list_filter = ['origin', 'mime_type', 'created_at']
    search_fields = ['file_name', 'storage_key', 'project__name']
    readonly_fields = ['storage_key', 'size', 'created_at']
    raw_id_fields = ['project', 'organization', 'created_by']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('project', 'created_by')
