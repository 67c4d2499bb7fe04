from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, AuditLog
from .pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


def _email_in_use(email, exclude_pk=None):
    queryset = User.objects.filter(email__iexact=email, deleted_at__isnull=True)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.exists()


class PageQuerySerializer(serializers.Serializer):
    """Common page/limit query parameters for list endpoints"""
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'name', 'first_name', 'last_name', 'phone', 'role',
                  'is_active', 'deleted_at', 'created_at', 'updated_at']
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation nested in orders"""
    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email']


class UserCreateSerializer(serializers.ModelSerializer):
    """Manager-side user provisioning"""
    email = serializers.EmailField()
    name = serializers.CharField(max_length=100)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])

    class Meta:
        model = User
        fields = ['email', 'name', 'role', 'phone', 'password']

    def validate_email(self, value):
        if _email_in_use(value) or User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError('User with this email already exists')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        user = User(username=validated_data['email'], is_active=True, **validated_data)
        if password:
            user.set_password(password)
        else:
            # Credentials are issued separately (invite / password reset)
            user.set_unusable_password()
        user.save()
        return user


class RegisterSerializer(serializers.ModelSerializer):
    """Self sign-up; new accounts always start as salespeople"""
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'name', 'phone', 'password', 'password_confirm']

    def validate_email(self, value):
        if _email_in_use(value):
            raise serializers.ValidationError('User with this email already exists')
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        if not validated_data.get('name'):
            validated_data['name'] = validated_data['email'].split('@')[0]
        user = User(role=User.ROLE_SALESPERSON, is_active=True, **validated_data)
        user.set_password(password)
        user.save()
        return user


class UserUpdateSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(required=False)
    name = serializers.CharField(max_length=100, required=False)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)

    class Meta:
        model = User
        fields = ['email', 'name', 'phone', 'role']

    def validate_email(self, value):
        exclude_pk = self.instance.pk if self.instance else None
        if _email_in_use(value, exclude_pk=exclude_pk):
            raise serializers.ValidationError('User with this email already exists')
        return value


class UserQuerySerializer(PageQuerySerializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    include_deleted = serializers.BooleanField(required=False, default=False)


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']
