from rest_framework import serializers

from .models import SystemSettings


# Класс SystemSettingsSerializer отдает синглтон настроек в camelCase. При обновлении
# переданные разделы сливаются с текущими значениями: ключи, не указанные в запросе,
# сохраняются (SystemSettings.merge_section).
class SystemSettingsSerializer(serializers.ModelSerializer):
    systemName = serializers.CharField(source='system_name', max_length=255, required=False)
    systemLogo = serializers.CharField(source='system_logo', max_length=500, required=False, allow_blank=True)
    systemDescription = serializers.CharField(source='system_description', required=False, allow_blank=True)
    emailSettings = serializers.DictField(source='email_settings', required=False)
    securitySettings = serializers.DictField(source='security_settings', required=False)
    fileSettings = serializers.DictField(source='file_settings', required=False)
    notificationSettings = serializers.DictField(source='notification_settings', required=False)
    academicSettings = serializers.DictField(source='academic_settings', required=False)
    maintenanceMode = serializers.DictField(source='maintenance_mode', required=False)
    backupSettings = serializers.DictField(source='backup_settings', required=False)
    themeSettings = serializers.DictField(source='theme_settings', required=False)
    lastUpdatedBy = serializers.CharField(source='last_updated_by', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = SystemSettings
        fields = (
            'id', 'systemName', 'systemLogo', 'systemDescription',
            'emailSettings', 'securitySettings', 'fileSettings', 'notificationSettings',
            'academicSettings', 'maintenanceMode', 'backupSettings', 'themeSettings',
            'lastUpdatedBy', 'createdAt', 'updatedAt',
        )

    def validate_securitySettings(self, value):
        if 'passwordMinLength' in value:
            try:
                length = int(value['passwordMinLength'])
            except (TypeError, ValueError):
                raise serializers.ValidationError('passwordMinLength must be a number')
            if length < 1:
                raise serializers.ValidationError('passwordMinLength must be positive')
        return value

    def validate_fileSettings(self, value):
        if 'maxFileSize' in value:
            try:
                size = int(value['maxFileSize'])
            except (TypeError, ValueError):
                raise serializers.ValidationError('maxFileSize must be a number')
            if size < 1:
                raise serializers.ValidationError('maxFileSize must be positive')
        return value

    def validate_academicSettings(self, value):
        if 'passingGrade' in value:
            try:
                passing = float(value['passingGrade'])
            except (TypeError, ValueError):
                raise serializers.ValidationError('passingGrade must be a number')
            if not 0 <= passing <= 100:
                raise serializers.ValidationError('passingGrade must be between 0 and 100')
        return value

    def update(self, instance, validated_data):
        field_to_section = {field: section for section, field in SystemSettings.SECTION_FIELDS.items()}
        for field, value in validated_data.items():
            if field in field_to_section:
                instance.merge_section(field_to_section[field], value)
            else:
                setattr(instance, field, value)
        instance.save()
        return instance


class MaintenanceSerializer(serializers.Serializer):
    operation = serializers.CharField(required=False, allow_blank=True)


class ResetSerializer(serializers.Serializer):
    confirmationCode = serializers.CharField(required=False, allow_blank=True)
    dataType = serializers.CharField(required=False, allow_blank=True)
