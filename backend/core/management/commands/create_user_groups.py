from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission

from backend.core.models import User


class Command(BaseCommand):
    help = 'Create Django user groups for RBAC (Salesperson, Manager, Warehouse) and sync users into them'

    groups_config = [
        {
            'name': 'Salesperson',
            'role': User.ROLE_SALESPERSON,
            'description': 'Sales staff - own customers and draft orders',
            'permissions': [
                ('parties', 'add_customer'),
                ('parties', 'change_customer'),
                ('parties', 'view_customer'),
                ('orders', 'add_saleorder'),
                ('orders', 'change_saleorder'),
                ('orders', 'view_saleorder'),
                ('catalog', 'view_product'),
            ],
        },
        {
            'name': 'Manager',
            'role': User.ROLE_MANAGER,
            'description': 'Managers - approve orders, manage products and users',
            'permissions': [
                ('*', 'All modules'),  # Handled specially
            ],
        },
        {
            'name': 'Warehouse',
            'role': User.ROLE_WAREHOUSE,
            'description': 'Warehouse staff - fulfil, pack and ship approved orders',
            'permissions': [
                ('orders', 'view_saleorder'),
                ('orders', 'change_saleorder'),
                ('orders', 'change_orderitem'),
                ('catalog', 'view_product'),
            ],
        },
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--no-sync',
            action='store_true',
            help='Only create the groups, do not move users into them',
        )

    def handle(self, *args, **options):
        created_count = 0
        updated_count = 0
        role_groups = {}

        for group_config in self.groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])
            role_groups[group_config['role']] = group

            if created:
                self.stdout.write(self.style.SUCCESS(f'Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            if group_config['role'] == User.ROLE_MANAGER:
                # Everything except Django admin internals
                permissions = Permission.objects.exclude(content_type__app_label='admin')
            else:
                permissions = Permission.objects.none()
                for app_label, codename in group_config['permissions']:
                    permissions = permissions | Permission.objects.filter(
                        content_type__app_label=app_label, codename=codename
                    )
            group.permissions.set(permissions)
            self.stdout.write(f'  Set {group.permissions.count()} permissions on {group_config["name"]}')

        synced = 0
        if not options['no_sync']:
            all_role_groups = list(role_groups.values())
            for user in User.objects.filter(deleted_at__isnull=True):
                group = role_groups.get(user.role)
                if group is None:
                    continue
                user.groups.remove(*[g for g in all_role_groups if g.pk != group.pk])
                user.groups.add(group)
                synced += 1

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed, '
            f'{synced} users synced'
        ))
