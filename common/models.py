from django.db import models

class TimestampedModel(models.Model):
    """
    Abstract base class with common timestamp fields
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    
    class Meta:
        abstract = True

class UserActionModel(TimestampedModel):
    """
    Abstract base class with user tracking fields
    """
    created_by = models.CharField(max_length=150, null=True, blank=True)
    updated_by = models.CharField(max_length=150, null=True, blank=True)
    
    class Meta:
        abstract = True

class LocatedModel(models.Model):
    """
    Abstract base class for profiles pinned on the map
    """
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    
    class Meta:
        abstract = True
    
    @property
    def location(self):
        """GeoJSON point, longitude first"""
        if self.latitude is None or self.longitude is None:
            return None
        return {'type': 'Point', 'coordinates': [self.longitude, self.latitude]}
