from rest_framework import serializers


class NumberRangeSerializer(serializers.Serializer):
    low = serializers.IntegerField()
    high = serializers.IntegerField()
    pick = serializers.IntegerField()


class LotterySerializer(serializers.Serializer):
    """Read-only view of a catalog entry."""

    code = serializers.CharField()
    name = serializers.CharField()
    kind = serializers.CharField()
    state = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    primary = NumberRangeSerializer()
    secondary = NumberRangeSerializer(allow_null=True)
    draw_schedule = serializers.SerializerMethodField()
    next_draw = serializers.SerializerMethodField()

    def get_draw_schedule(self, lottery):
        return [{"day": day, "time": hhmm} for day, hhmm in lottery.draw_schedule]

    def get_next_draw(self, lottery):
        next_draw = lottery.next_draw(self.context.get("now"))
        return next_draw.isoformat() if next_draw else None
