from django.db import models
from django.utils.translation import gettext_lazy as _


class News(models.Model):
    """Новость платформы. Заголовок уникален без учета регистра и служит адресом новости в API."""

    class Status(models.TextChoices):
        DRAFT = 'draft', _('Черновик')
        PUBLISHED = 'published', _('Опубликована')
        ARCHIVED = 'archived', _('В архиве')

    title = models.CharField(_('заголовок'), max_length=255, unique=True)
    description = models.TextField(_('описание'))
    image_url = models.CharField(_('URL изображения'), max_length=1000, blank=True, default='')
    image_path = models.CharField(_('путь к изображению'), max_length=500, blank=True, default='')
    author = models.CharField(_('автор'), max_length=255, default='Admin')
    status = models.CharField(
        _('статус'), max_length=10, choices=Status.choices, default=Status.PUBLISHED, db_index=True
    )
    created_at = models.DateTimeField(_('создано'), auto_now_add=True)
    updated_at = models.DateTimeField(_('обновлено'), auto_now=True)

    class Meta:
        verbose_name = _('новость')
        verbose_name_plural = _('новости')
        ordering = ['-created_at']  # Сначала новые
        indexes = [
            models.Index(fields=['title', '-created_at']),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        self.title = self.title.strip()
        super().save(*args, **kwargs)
