from django.urls import path
from .views import (
    order_list_create, order_detail, order_history,
    order_submit, order_approve, order_reject, order_fulfill,
    order_start_packing, order_mark_packed, order_mark_shipped, order_mark_delivered,
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/history/', order_history, name='order-history'),

    # Approval workflow
    path('orders/<int:pk>/submit/', order_submit, name='order-submit'),
    path('orders/<int:pk>/approve/', order_approve, name='order-approve'),
    path('orders/<int:pk>/reject/', order_reject, name='order-reject'),
    path('orders/<int:pk>/fulfill/', order_fulfill, name='order-fulfill'),

    # Warehouse shipping track
    path('orders/<int:pk>/start-packing/', order_start_packing, name='order-start-packing'),
    path('orders/<int:pk>/mark-packed/', order_mark_packed, name='order-mark-packed'),
    path('orders/<int:pk>/mark-shipped/', order_mark_shipped, name='order-mark-shipped'),
    path('orders/<int:pk>/mark-delivered/', order_mark_delivered, name='order-mark-delivered'),
]
