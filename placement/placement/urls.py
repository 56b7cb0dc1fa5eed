from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from accounts import views as accounts_views
from jobs.urls import admin_urlpatterns, company_urlpatterns, student_urlpatterns

urlpatterns = [
    path('site-admin/', admin.site.urls),
    path('', accounts_views.home, name='home'),
    path('accounts/', include('accounts.urls')),
    path('student/', include(student_urlpatterns)),
    path('student/documents/', include('documents.urls')),
    path('admin/', include(admin_urlpatterns)),
    path('company/', include(company_urlpatterns)),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
