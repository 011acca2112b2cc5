from django.urls import path, include

urlpatterns = [
    path('', include('objects_app.urls', namespace='objects_app')),
]
