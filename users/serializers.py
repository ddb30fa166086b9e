from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()


# Публичное представление пользователя. Хэш пароля никогда не сериализуется.
class UserSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source='user_id', read_only=True)
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)
    createdAt = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = ('id', 'userId', 'firstName', 'lastName', 'department', 'email', 'role', 'createdAt')
        read_only_fields = fields


# Краткое представление для вложения в другие ответы (загрузивший материал и т.п.).
class UserBriefSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source='user_id', read_only=True)
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)

    class Meta:
        model = User
        fields = ('userId', 'firstName', 'lastName', 'email', 'role')
        read_only_fields = fields


# Минимальная длина пароля берется из системных настроек запроса
# (securitySettings.passwordMinLength), без запроса используется 8.
def validate_password_length(password, request=None):
    system_settings = getattr(request, 'system_settings', None) if request else None
    min_length = system_settings.password_min_length if system_settings else 8
    if len(password) < min_length:
        raise serializers.ValidationError(f'Password must be at least {min_length} characters long')


# Сериализатор UserRegistrationSerializer валидирует тело запроса регистрации.
# Порядок проверок: дубликат userId, дубликат email, кафедра для не-администраторов,
# минимальная длина пароля из системных настроек (securitySettings.passwordMinLength).
# Существование кафедры проверяется в представлении (404).
class UserRegistrationSerializer(serializers.Serializer):
    userId = serializers.CharField(max_length=50)
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150)
    department = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    role = serializers.ChoiceField(choices=User.Role.choices)

    def validate(self, attrs):
        attrs['userId'] = attrs['userId'].strip()
        attrs['email'] = attrs['email'].strip().lower()
        attrs['department'] = attrs.get('department', '').strip().upper()

        if User.objects.filter(user_id=attrs['userId']).exists():
            raise serializers.ValidationError('User with this ID already exists')
        if User.objects.filter(email__iexact=attrs['email']).exists():
            raise serializers.ValidationError('User with this email already exists')
        if attrs['role'] != User.Role.ADMIN and not attrs['department']:
            raise serializers.ValidationError('Department is required for students and lecturers')

        validate_password_length(attrs['password'], self.context.get('request'))
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            user_id=validated_data['userId'],
            first_name=validated_data['firstName'],
            last_name=validated_data['lastName'],
            department=validated_data['department'],
            role=validated_data['role'],
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})


# Все поля необязательны: обновляются только переданные. currentEmail указывает
# цель обновления; без него обновляется сам запрашивающий пользователь.
# departmentId принимается как синоним department.
class UserUpdateSerializer(serializers.Serializer):
    currentEmail = serializers.EmailField(required=False)
    userId = serializers.CharField(max_length=50, required=False)
    firstName = serializers.CharField(max_length=150, required=False)
    lastName = serializers.CharField(max_length=150, required=False)
    department = serializers.CharField(max_length=20, required=False)
    departmentId = serializers.CharField(max_length=20, required=False)
    email = serializers.EmailField(required=False)
    password = serializers.CharField(write_only=True, required=False, style={'input_type': 'password'})
    role = serializers.ChoiceField(choices=User.Role.choices, required=False)

    def validate(self, attrs):
        department = attrs.pop('departmentId', None) or attrs.get('department')
        if department:
            attrs['department'] = department.strip().upper()
        if attrs.get('email'):
            attrs['email'] = attrs['email'].strip().lower()
        if attrs.get('userId'):
            attrs['userId'] = attrs['userId'].strip()
        if attrs.get('password'):
            validate_password_length(attrs['password'], self.context.get('request'))
        return attrs

    def update(self, instance, validated_data):
        field_map = {
            'userId': 'user_id',
            'firstName': 'first_name',
            'lastName': 'last_name',
            'department': 'department',
            'email': 'email',
            'role': 'role',
        }
        for api_name, model_field in field_map.items():
            if validated_data.get(api_name):
                setattr(instance, model_field, validated_data[api_name])
        if validated_data.get('password'):
            instance.set_password(validated_data['password'])
        instance.save()
        return instance


# Сериализатор токенов добавляет в payload идентификационные claims пользователя:
# userId (через USER_ID_CLAIM), имя, фамилию, email, кафедру и роль.
class LmsTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['firstName'] = user.first_name
        token['lastName'] = user.last_name
        token['email'] = user.email
        token['department'] = user.department
        token['role'] = user.role
        return token
