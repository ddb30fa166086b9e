from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# Класс CustomUserManager управляет созданием экземпляров кастомной модели User.
# Email используется для входа, а внешний идентификатор user_id (номер студента
# или сотрудника) служит идентичностью в токенах и во всех ссылках между сущностями.
class CustomUserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError(_('The Email must be set'))
        if not extra_fields.get('user_id'):
            raise ValueError(_('The User ID must be set'))
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    # Суперпользователь всегда получает роль администратора и не привязан к кафедре.
    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))
        return self.create_user(email, password, **extra_fields)


# Модель User представляет пользователя системы обучения: студента, преподавателя
# или администратора. Кафедра хранится кодом (department_id кафедры) и обязательна
# для всех ролей, кроме администратора; проверка выполняется в clean() и в сериализаторе
# регистрации.
class User(AbstractBaseUser, PermissionsMixin):
    class Role(models.TextChoices):
        ADMIN = 'admin', _('Администратор')
        STUDENT = 'student', _('Студент')
        LECTURER = 'lecturer', _('Преподаватель')

    user_id = models.CharField(_('идентификатор пользователя'), max_length=50, unique=True)
    email = models.EmailField(_('email address'), unique=True)
    first_name = models.CharField(_('first name'), max_length=150)
    last_name = models.CharField(_('last name'), max_length=150)
    role = models.CharField(_('роль'), max_length=20, choices=Role.choices, default=Role.STUDENT)
    department = models.CharField(_('кафедра'), max_length=20, blank=True, db_index=True)

    is_staff = models.BooleanField(
        _('staff status'),
        default=False,
        help_text=_('Designates whether the user can log into this admin site.'),
    )
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['user_id', 'first_name', 'last_name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return f"{self.user_id} ({self.email})"

    def clean(self):
        from django.core.exceptions import ValidationError
        if self.role != self.Role.ADMIN and not self.department:
            raise ValidationError({'department': _('Department is required for students and lecturers')})

    def get_full_name(self):
        full_name = f'{self.first_name} {self.last_name}'.strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split('@')[0]

    # Property-методы для удобной проверки роли пользователя.
    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_lecturer(self):
        return self.role == self.Role.LECTURER

    @property
    def is_student(self):
        return self.role == self.Role.STUDENT
