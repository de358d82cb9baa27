"""
音声認識モジュール

このモジュールはマイクから音声を録音し、日本語の音声をテキストに変換する機能を提供します。
文字起こしはローカルの Whisper モデル、または Google Cloud Speech-to-Text API で行います。
"""

import base64
import os
import time
import wave
import platform
import subprocess
import numpy as np
import pyaudio
import requests
import torch
from transformers import AutoProcessor, AutoModelForSpeechSeq2Seq, pipeline

SYSTEM = platform.system()

GOOGLE_SPEECH_URL = "https://speech.googleapis.com/v1/speech:recognize"

CHUNK = 1024
FORMAT = pyaudio.paInt16
CHANNELS = 1
RATE = 16000

try:
    from playsound import playsound

    PLAYSOUND_AVAILABLE = True
except ImportError as e:
    print(f"playsound を読み込めませんでした: {e}")
    PLAYSOUND_AVAILABLE = False


class SpeechRecognizer:
    """音声認識クラス"""

    def __init__(
        self,
        backend="whisper",
        model_name="openai/whisper-large-v3",
        language="japanese",
        language_code="ja-JP",
        api_key=None,
        cache_dir="models",
        notification_sound="src/speech/sounds/start_recording.mp3",
    ):
        """
        SpeechRecognizer 初期化

        Args:
            backend (str): 文字起こしの方式 ('whisper' または 'google')
            model_name (str): Whisper のモデル名
            language (str): Whisper に渡す言語名
            language_code (str): Google Speech-to-Text に渡す言語コード
            api_key (str): Google Speech-to-Text の API キー
                (None の場合は環境変数 GOOGLE_SPEECH_API_KEY)
            cache_dir (str): モデルのキャッシュディレクトリ
            notification_sound (str): 録音開始を知らせる音声ファイルのパス
        """
        self.backend = backend
        self.model_name = model_name
        self.language = language
        self.language_code = language_code
        self.api_key = api_key or os.environ.get("GOOGLE_SPEECH_API_KEY", "")
        self.cache_dir = cache_dir
        self.device = "cuda" if torch.cuda.is_available() else "cpu"
        self.processor = None
        self.model = None
        self.pipe = None
        self.notification_sound = notification_sound

    def play_notification(self):
        """録音開始の通知音を再生"""
        if not os.path.exists(self.notification_sound):
            print("通知音のファイルがないため、通知音なしで録音を開始します。")
            return

        if PLAYSOUND_AVAILABLE:
            try:
                playsound(self.notification_sound)
                return
            except Exception as e:
                print(f"playsound での通知音の再生に失敗しました: {e}")

        try:
            if SYSTEM == "Darwin":
                subprocess.call(["afplay", self.notification_sound])
                return
            elif SYSTEM == "Linux":
                subprocess.call(["aplay", self.notification_sound])
                return
        except Exception as e:
            print(f"システムコマンドでの通知音の再生に失敗しました: {e}")

        print("通知音を再生できないため、通知音なしで録音を開始します。")

    def load_model(self):
        """Whisper モデルを読み込む"""
        print(f"音声認識モデルを読み込んでいます: {self.model_name}")

        os.makedirs(self.cache_dir, exist_ok=True)

        self.processor = AutoProcessor.from_pretrained(
            self.model_name, cache_dir=self.cache_dir
        )

        self.model = AutoModelForSpeechSeq2Seq.from_pretrained(
            self.model_name,
            torch_dtype=torch.float16 if self.device == "cuda" else torch.float32,
            cache_dir=self.cache_dir,
        ).to(self.device)

        self.pipe = pipeline(
            "automatic-speech-recognition",
            model=self.model,
            tokenizer=self.processor.tokenizer,
            feature_extractor=self.processor.feature_extractor,
            chunk_length_s=30,
            batch_size=16,
            device=self.device,
        )

        print("モデルの読み込みが完了しました")

    def record_audio(
        self,
        filename="recorded_audio.wav",
        silence_threshold=1000,
        silence_duration=2.0,
        max_duration=60,
    ):
        """
        マイクから録音 (無音が続くと自動で終了)

        Args:
            filename (str): 保存先の WAV ファイルパス
            silence_threshold (int): 無音とみなす音量の下限
            silence_duration (float): 録音を終了するまでの無音の長さ (秒)
            max_duration (int): 最大録音時間 (秒)

        Returns:
            str: 保存した WAV ファイルのパス
        """
        audio = pyaudio.PyAudio()

        stream = audio.open(
            format=FORMAT,
            channels=CHANNELS,
            rate=RATE,
            input=True,
            frames_per_buffer=CHUNK,
        )

        print("録音を開始します。話しかけてください。(無音が続くと自動で終了します)")

        self.play_notification()

        # 最初の 0.5 秒で周囲の雑音レベルを測り、しきい値を調整する
        background = b"".join(
            stream.read(CHUNK, exception_on_overflow=False)
            for _ in range(int(0.5 * RATE / CHUNK))
        )
        background_rms = self._rms(background)
        threshold = max(silence_threshold, background_rms * 2)
        print(f"周囲の雑音レベル: {background_rms}, 調整後のしきい値: {threshold}")

        frames = []
        silent_chunks = 0
        silent_limit = int(silence_duration * RATE / CHUNK)
        start_time = time.time()

        while True:
            data = stream.read(CHUNK, exception_on_overflow=False)
            frames.append(data)

            if self._rms(data) < threshold:
                silent_chunks += 1
                if silent_chunks >= silent_limit:
                    print("無音を検出したため録音を終了します。")
                    break
            else:
                silent_chunks = 0

            if time.time() - start_time > max_duration:
                print(f"最大録音時間 ({max_duration}秒) に達したため録音を終了します。")
                break

        print("録音が完了しました")

        stream.stop_stream()
        stream.close()
        audio.terminate()

        wf = wave.open(filename, "wb")
        wf.setnchannels(CHANNELS)
        wf.setsampwidth(audio.get_sample_size(FORMAT))
        wf.setframerate(RATE)
        wf.writeframes(b"".join(frames))
        wf.close()

        return filename

    @staticmethod
    def _rms(data):
        samples = np.frombuffer(data, dtype=np.int16).astype(np.float64)
        return np.sqrt(np.mean(samples**2))

    def transcribe(self, audio_file):
        """
        音声ファイルをテキストに変換

        Args:
            audio_file (str): 音声ファイルのパス

        Returns:
            str: 認識したテキスト
        """
        if self.backend == "whisper":
            return self._transcribe_with_whisper(audio_file)
        elif self.backend == "google":
            return self._transcribe_with_google(audio_file)
        else:
            raise ValueError(f"対応していない音声認識方式です: {self.backend}")

    def _transcribe_with_whisper(self, audio_file):
        """Whisper モデルで文字起こし"""
        if not self.pipe:
            self.load_model()

        print("音声をテキストに変換しています...")

        result = self.pipe(
            audio_file,
            generate_kwargs={
                "language": self.language,
                "task": "transcribe",
                "max_new_tokens": 128,
            },
        )

        return result["text"].strip()

    def _transcribe_with_google(self, audio_file):
        """Google Cloud Speech-to-Text API で文字起こし"""
        if not self.api_key:
            raise ValueError("Google Speech-to-Text の API キーが設定されていません")

        with open(audio_file, "rb") as f:
            content = base64.b64encode(f.read()).decode("ascii")

        print("音声をテキストに変換しています...")

        response = requests.post(
            GOOGLE_SPEECH_URL,
            params={"key": self.api_key},
            json={
                "config": {
                    "encoding": "LINEAR16",
                    "sampleRateHertz": RATE,
                    "languageCode": self.language_code,
                    "enableAutomaticPunctuation": True,
                },
                "audio": {"content": content},
            },
            timeout=30,
        )

        if not response.ok:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = response.text or "リクエストに失敗しました"
            raise RuntimeError(f"Google Speech API エラー ({response.status_code}): {message}")

        data = response.json()
        return "".join(
            result["alternatives"][0]["transcript"]
            for result in data.get("results", [])
            if result.get("alternatives")
        )
