from django.contrib.auth.models import Group
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from .models import User, PagePermission, AuditLog, ROLE_ADMIN, ROLE_CHOICES


class PagePermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PagePermission
        fields = ['id', 'name', 'display_name', 'description']


class UserSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()
    page_permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'username', 'email', 'phone', 'address', 'is_active',
                  'role', 'page_permissions', 'last_login', 'created_at', 'updated_at']
        read_only_fields = ['last_login', 'created_at', 'updated_at']

    def get_role(self, obj):
        return obj.role

    def get_page_permissions(self, obj):
        return obj.get_page_permission_names()


class UserWriteSerializer(serializers.ModelSerializer):
    """Create/update a user together with role and page permissions"""
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    password_confirm = serializers.CharField(write_only=True, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=ROLE_CHOICES, write_only=True)
    permissions = serializers.ListField(
        child=serializers.CharField(), write_only=True, required=False, allow_empty=True
    )

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'phone', 'address', 'is_active',
                  'password', 'password_confirm', 'role', 'permissions']
        extra_kwargs = {'name': {'required': True, 'allow_blank': False}}

    def validate_permissions(self, value):
        names, ids = [], []
        for item in value:
            if str(item).isdigit():
                ids.append(int(item))
            else:
                names.append(item)
        found = list(PagePermission.objects.filter(name__in=names)) + list(PagePermission.objects.filter(id__in=ids))
        missing = set(names) - {p.name for p in found} | set(ids) - {p.id for p in found}
        if missing:
            raise serializers.ValidationError(f"Unknown page permissions: {', '.join(str(m) for m in sorted(missing, key=str))}")
        return found

    def validate(self, attrs):
        password = attrs.get('password')
        if self.instance is None and not password:
            raise serializers.ValidationError({'password': 'This field is required.'})
        if password:
            if password != attrs.get('password_confirm'):
                raise serializers.ValidationError({'password': "Passwords don't match"})
            validate_password(password, self.instance)
        return attrs

    def _apply_role(self, user, role, permissions):
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.set([group])
        user.is_staff = role == ROLE_ADMIN
        user.save(update_fields=['is_staff'])
        if role == ROLE_ADMIN:
            user.page_permissions.set(PagePermission.objects.all())
        elif permissions is not None:
            user.page_permissions.set(permissions)

    def create(self, validated_data):
        validated_data.pop('password_confirm', None)
        password = validated_data.pop('password')
        role = validated_data.pop('role')
        permissions = validated_data.pop('permissions', [])
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        self._apply_role(user, role, permissions)
        return user

    def update(self, instance, validated_data):
        validated_data.pop('password_confirm', None)
        password = validated_data.pop('password', None)
        role = validated_data.pop('role', None)
        permissions = validated_data.pop('permissions', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        if role:
            self._apply_role(instance, role, permissions)
        elif permissions is not None and not instance.is_admin_role():
            instance.page_permissions.set(permissions)
        return instance


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['name', 'email', 'phone', 'address']
        extra_kwargs = {'name': {'required': True, 'allow_blank': False}}


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    password = serializers.CharField(write_only=True)
    password_confirm = serializers.CharField(write_only=True)

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect.')
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({'password': "Passwords don't match"})
        validate_password(attrs['password'], self.context['request'].user)
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'user_name', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']

    def get_user_name(self, obj):
        return str(obj.user) if obj.user else None
