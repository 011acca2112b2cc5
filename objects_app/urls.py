from django.urls import path

from . import views

app_name = 'objects_app'

urlpatterns = [
    path("", views.commit_overview, name="commit_overview"),
    path("tree/", views.tree_view, name="tree_root"),
    path("tree/<path:path>/", views.tree_view, name="tree_view"),
    path("blob/<path:path>", views.blob_view, name="blob_view"),
]
