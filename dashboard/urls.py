from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('', views.index, name='home'),
    path('appointments/', views.appointments, name='appointments'),
    path('appointments/new/', views.appointment_form, name='appointment_form'),
    path('careers/', views.careers, name='careers'),
    path('careers/new/', views.job_form, name='job_new'),
    path('careers/<int:pk>/edit/', views.job_form, name='job_edit'),
    path('careers/<int:pk>/toggle/', views.job_toggle, name='job_toggle'),
    path('careers/<int:pk>/delete/', views.job_delete, name='job_delete'),
    path('applications/', views.applications, name='applications'),
    path('message/', views.message, name='message'),
]
