from rest_framework import serializers

from .models import News


# Класс NewsSerializer. При создании обязательны заголовок и описание; заголовок
# проверяется на уникальность без учета регистра. Автор проставляется представлением.
class NewsSerializer(serializers.ModelSerializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    imageUrl = serializers.CharField(source='image_url', max_length=1000, required=False, allow_blank=True)
    imagePath = serializers.CharField(source='image_path', max_length=500, required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = News
        fields = ('id', 'title', 'description', 'imageUrl', 'imagePath', 'author', 'status', 'createdAt', 'updatedAt')
        read_only_fields = ('author',)
        extra_kwargs = {'status': {'required': False}}

    def validate(self, attrs):
        for field in ('title', 'description'):
            if isinstance(attrs.get(field), str):
                attrs[field] = attrs[field].strip()

        if self.instance is None and (not attrs.get('title') or not attrs.get('description')):
            raise serializers.ValidationError('Title and description are required')
        if self.instance is not None and 'title' in attrs and not attrs['title']:
            raise serializers.ValidationError('Title cannot be empty')

        title = attrs.get('title')
        if title:
            duplicates = News.objects.filter(title__iexact=title)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError('News with this title already exists')
        return attrs
