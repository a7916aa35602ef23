"""
Slash-команды /register и /unregister: настройка канала уведомлений гильдии.
"""

import logging
from typing import Optional

import discord
from discord import app_commands

from emoji_notifier.directory import DestinationDirectory, DirectoryError

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "okay, I will notify here for new emojis!"
UNREGISTERED_MESSAGE = "unregistered!"
ERROR_MESSAGE = "hmm, something went to wrong: {error}"
GUILD_ONLY_MESSAGE = "this command is only available in a server channel"


async def handle_register(
    directory: DestinationDirectory,
    guild_id: Optional[int],
    channel_id: Optional[int]
) -> str:
    """Регистрирует канал и возвращает текст ответа пользователю."""
    if guild_id is None or channel_id is None:
        return GUILD_ONLY_MESSAGE

    try:
        await directory.register(str(guild_id), str(channel_id))
    except DirectoryError as e:
        return ERROR_MESSAGE.format(error=e)

    return REGISTERED_MESSAGE


async def handle_unregister(
    directory: DestinationDirectory,
    guild_id: Optional[int],
    channel_id: Optional[int]
) -> str:
    """Снимает регистрацию канала и возвращает текст ответа пользователю."""
    if guild_id is None or channel_id is None:
        return GUILD_ONLY_MESSAGE

    try:
        await directory.unregister(str(guild_id), str(channel_id))
    except DirectoryError as e:
        return ERROR_MESSAGE.format(error=e)

    return UNREGISTERED_MESSAGE


async def _respond(interaction: discord.Interaction, message: str):
    try:
        await interaction.response.send_message(message)
    except discord.HTTPException as e:
        logger.error(f"❌ Не удалось ответить на команду: {e}")


# default_permissions() без аргументов: по умолчанию только администраторы,
# дальше доступ настраивается в интеграциях сервера
@app_commands.command(name="register", description="make this channel to a notification channel")
@app_commands.guild_only()
@app_commands.default_permissions()
async def register_command(interaction: discord.Interaction):
    logger.info(f"/register: guild {interaction.guild_id} channel {interaction.channel_id} user {interaction.user.id}")
    message = await handle_register(interaction.client.directory, interaction.guild_id, interaction.channel_id)
    await _respond(interaction, message)


@app_commands.command(name="unregister", description="stop to notify here")
@app_commands.guild_only()
@app_commands.default_permissions()
async def unregister_command(interaction: discord.Interaction):
    logger.info(f"/unregister: guild {interaction.guild_id} channel {interaction.channel_id} user {interaction.user.id}")
    message = await handle_unregister(interaction.client.directory, interaction.guild_id, interaction.channel_id)
    await _respond(interaction, message)


COMMANDS = [register_command, unregister_command]
