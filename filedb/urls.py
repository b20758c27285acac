from django.urls import path

from filedb.views import FileHistoryView, FileIndexView, FileVersionView, LatestFileView

app_name = "filedb"

urlpatterns = [
    path("files/", FileIndexView.as_view(), name="file-index"),
    path("files/<str:key>/", FileHistoryView.as_view(), name="file-history"),
    path("files/<str:key>/latest/", LatestFileView.as_view(), name="file-latest"),
    path("files/<str:key>/<str:timestamp>/", FileVersionView.as_view(), name="file-version"),
]
