from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="VersionedFile",
            fields=[
                (
                    "pk",
                    models.CompositePrimaryKey(
                        "key",
                        "timestamp",
                        blank=True,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("key", models.TextField()),
                ("timestamp", models.DateTimeField()),
                ("payload", models.BinaryField()),
            ],
            options={
                "ordering": ["key", "timestamp"],
            },
        ),
    ]
