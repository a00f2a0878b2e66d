from django.urls import path
from . import views

urlpatterns = [
	path('', views.home, name='home'),
	path('contact/', views.contact, name='contact'),
	path('message/', views.send_message, name='send_message'),
	path('appointment/', views.appointment_form, name="appointment_form"),
	path('careers/', views.careers, name='careers'),
	path('careers/<slug:slug>/', views.job_detail, name='job_detail'),
	path('careers/<slug:slug>/apply/', views.job_apply, name='job_apply'),
]
